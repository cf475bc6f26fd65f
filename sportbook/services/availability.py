# sportbook/services/availability.py
"""
Time-slot availability for a facility on a given date.

A slot is the half-open interval [start, end) in "HH:MM". Only bookings in a
blocking state hold their slot: approved and completed ones, plus cancellation
requests on bookings that were approved (a denied request puts them back).
Pending requests never hold a slot, so several customers may ask for the same
time and the owner's approval decides who gets it.
"""
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from sportbook import models
from sportbook.exceptions import NotFound

logger = logging.getLogger(__name__)

BLOCKING_STATUSES = (models.BookingStatus.APPROVED, models.BookingStatus.COMPLETED)


def to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def ranges_overlap(start: str, end: str, other_start: str, other_end: str) -> bool:
    return to_minutes(start) < to_minutes(other_end) and to_minutes(end) > to_minutes(other_start)


def is_blocking(booking: models.Booking) -> bool:
    if booking.status in BLOCKING_STATUSES:
        return True
    return (
        booking.status == models.BookingStatus.CANCELLATION_REQUESTED
        and booking.status_before_cancellation == models.BookingStatus.APPROVED
    )


def blocking_clause():
    return or_(
        models.Booking.status.in_(BLOCKING_STATUSES),
        and_(
            models.Booking.status == models.BookingStatus.CANCELLATION_REQUESTED,
            models.Booking.status_before_cancellation == models.BookingStatus.APPROVED,
        ),
    )


def blocking_bookings(
    db: Session, facility_id: int, booking_date: date, exclude_booking_id: Optional[int] = None
) -> List[models.Booking]:
    query = db.query(models.Booking).filter(
        models.Booking.facility_id == facility_id,
        models.Booking.booking_date == booking_date,
        blocking_clause(),
    )
    if exclude_booking_id is not None:
        query = query.filter(models.Booking.id != exclude_booking_id)
    return query.all()


def check_time_slot_availability(
    db: Session,
    facility_id: int,
    booking_date: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    for booking in blocking_bookings(db, facility_id, booking_date, exclude_booking_id):
        if ranges_overlap(start_time, end_time, booking.start_time, booking.end_time):
            logger.debug(
                f"Slot {booking_date} {start_time}-{end_time} on facility {facility_id} "
                f"overlaps booking {booking.id}"
            )
            return False
    return True


def booked_slots(db: Session, facility_id: int, booking_date: date) -> List[Tuple[str, str]]:
    slots = [(b.start_time, b.end_time) for b in blocking_bookings(db, facility_id, booking_date)]
    return sorted(slots, key=lambda slot: to_minutes(slot[0]))


# Per-facility locks serialize "check + write" inside one process; the row lock
# below does the same across processes on databases that support FOR UPDATE.
_facility_locks = defaultdict(threading.Lock)
_facility_locks_guard = threading.Lock()


def _lock_for(facility_id: int) -> threading.Lock:
    with _facility_locks_guard:
        return _facility_locks[facility_id]


@contextmanager
def slot_lock(db: Session, facility_id: int):
    """Hold the facility's slot lock; yields the locked Facility row."""
    lock = _lock_for(facility_id)
    with lock:
        facility = (
            db.query(models.Facility)
            .filter(models.Facility.id == facility_id)
            .with_for_update()
            .first()
        )
        if facility is None:
            raise NotFound("Facility not found")
        yield facility
