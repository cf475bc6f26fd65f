# sportbook/services/bookings.py
"""
Booking lifecycle.

    pending ──> approved ──> completed
       │  │        │
       │  └──> rejected
       │           v
       └──> cancellation_requested ──> cancelled
                   │
                   └──> back to the status held before the request

Every status change goes through `transition`, which enforces TRANSITIONS.
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from sportbook import models
from sportbook.auth import AuthContext, require_role
from sportbook.config import settings
from sportbook.exceptions import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from sportbook.models import BookingStatus, PaymentStatus
from sportbook.schemas import WEEKDAYS
from sportbook.services import availability

logger = logging.getLogger(__name__)

TRANSITIONS = {
    BookingStatus.PENDING: {
        BookingStatus.APPROVED,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLATION_REQUESTED,
    },
    BookingStatus.APPROVED: {BookingStatus.COMPLETED, BookingStatus.CANCELLATION_REQUESTED},
    BookingStatus.CANCELLATION_REQUESTED: {
        BookingStatus.CANCELLED,
        BookingStatus.APPROVED,
        BookingStatus.PENDING,
    },
    BookingStatus.REJECTED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}

# Payments are only recorded against bookings the owner has accepted
PAYABLE_STATUSES = {
    BookingStatus.APPROVED,
    BookingStatus.CANCELLATION_REQUESTED,
    BookingStatus.COMPLETED,
}


# Venue wall-clock time
def local_now() -> datetime:
    return datetime.utcnow() + timedelta(hours=settings.VENUE_UTC_OFFSET_HOURS)


def ensure_transition(booking: models.Booking, target: BookingStatus) -> None:
    if target not in TRANSITIONS[booking.status]:
        raise InvalidTransition(
            f"Booking {booking.id} cannot move from '{booking.status.value}' to '{target.value}'"
        )


def transition(booking: models.Booking, target: BookingStatus) -> None:
    ensure_transition(booking, target)
    previous = booking.status
    booking.status = target
    logger.info(f"Booking {booking.id}: {previous.value} -> {target.value}")


def booking_start(booking: models.Booking) -> datetime:
    return _at(booking.booking_date, booking.start_time)


def booking_end(booking: models.Booking) -> datetime:
    return _at(booking.booking_date, booking.end_time)


def _at(day: date, hhmm: str) -> datetime:
    # "24:00" lands on midnight of the following day
    return datetime.combine(day, time(0)) + timedelta(minutes=availability.to_minutes(hhmm))


@contextmanager
def _unit_of_work(db: Session):
    try:
        yield
    except Exception:
        db.rollback()
        raise


def get_booking(db: Session, booking_id: int) -> models.Booking:
    booking = db.get(models.Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def _owned_booking(db: Session, ctx: AuthContext, booking_id: int) -> models.Booking:
    booking = get_booking(db, booking_id)
    require_role(ctx, models.Role.BUSINESS)
    if booking.facility.business.user_id != ctx.user_id:
        raise Forbidden("Only the facility owner can manage this booking")
    return booking


def get_booking_for(db: Session, ctx: AuthContext, booking_id: int) -> models.Booking:
    booking = get_booking(db, booking_id)
    if booking.user_id != ctx.user_id and booking.facility.business.user_id != ctx.user_id:
        raise Forbidden("You do not have access to this booking")
    return booking


def _validate_slot(start_time: str, end_time: str, duration: int) -> None:
    start, end = availability.to_minutes(start_time), availability.to_minutes(end_time)
    if end <= start:
        raise ValidationError("End time must be after start time")
    if (end - start) % 60:
        raise ValidationError("Bookings must cover whole hours")
    if duration != (end - start) // 60:
        raise ValidationError("Duration does not match the selected time range")


def _check_operating_hours(facility: models.Facility, booking_date: date, start_time: str, end_time: str):
    hours = facility.operating_hours
    if not hours:
        return
    day = WEEKDAYS[booking_date.weekday()]
    slot = hours.get(day)
    if slot is None:
        raise ValidationError(f"Facility is closed on {day.capitalize()}")
    if availability.to_minutes(start_time) < availability.to_minutes(slot["open"]) or (
        availability.to_minutes(end_time) > availability.to_minutes(slot["close"])
    ):
        raise ValidationError(
            f"Facility is open from {slot['open']} to {slot['close']} on {day.capitalize()}"
        )


def create_booking(
    db: Session,
    ctx: AuthContext,
    facility_id: int,
    booking_date: date,
    start_time: str,
    end_time: str,
    duration: int,
    customer_name: str,
    customer_phone: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Booking:
    """
    Validates the request, then checks availability and inserts the booking
    while holding the facility's slot lock.
    """
    require_role(ctx, models.Role.CUSTOMER)
    now = now or local_now()

    if not customer_name or not customer_name.strip() or not customer_phone or not customer_phone.strip():
        raise ValidationError("Customer name and phone are required")
    _validate_slot(start_time, end_time, duration)
    if _at(booking_date, start_time) <= now:
        raise ValidationError("Booking start time has already passed")

    with availability.slot_lock(db, facility_id) as facility, _unit_of_work(db):
        if not facility.is_active:
            raise NotFound("Facility not found")
        _check_operating_hours(facility, booking_date, start_time, end_time)

        if not availability.check_time_slot_availability(db, facility_id, booking_date, start_time, end_time):
            logger.warning(
                f"Booking conflict on facility {facility_id} at {booking_date} {start_time}-{end_time}"
            )
            raise Conflict("Selected time slot is no longer available")

        booking = models.Booking(
            user_id=ctx.user_id,
            facility_id=facility_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            # Price is fixed at booking time
            total_price=Decimal(facility.price_per_hour) * duration,
            customer_name=customer_name.strip(),
            customer_phone=customer_phone.strip(),
            notes=notes,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
        )
        db.add(booking)
        db.commit()

    db.refresh(booking)
    logger.info(
        f"Booking {booking.id} created by user {ctx.user_id} for facility {facility_id} "
        f"on {booking_date} {start_time}-{end_time}"
    )
    return booking


def approve_booking(db: Session, ctx: AuthContext, booking_id: int) -> models.Booking:
    booking = _owned_booking(db, ctx, booking_id)

    with availability.slot_lock(db, booking.facility_id), _unit_of_work(db):
        # Another request may have changed this booking while we waited for the lock
        db.refresh(booking)
        ensure_transition(booking, BookingStatus.APPROVED)

        if not availability.check_time_slot_availability(
            db,
            booking.facility_id,
            booking.booking_date,
            booking.start_time,
            booking.end_time,
            exclude_booking_id=booking.id,
        ):
            logger.warning(f"Cannot approve booking {booking.id}: slot already taken")
            raise Conflict("Another booking already holds this time slot")

        transition(booking, BookingStatus.APPROVED)
        db.commit()

    db.refresh(booking)
    return booking


def reject_booking(db: Session, ctx: AuthContext, booking_id: int) -> models.Booking:
    booking = _owned_booking(db, ctx, booking_id)
    with availability.slot_lock(db, booking.facility_id), _unit_of_work(db):
        db.refresh(booking)
        transition(booking, BookingStatus.REJECTED)
        db.commit()
    db.refresh(booking)
    return booking


def request_cancellation(
    db: Session,
    ctx: AuthContext,
    booking_id: int,
    reason: str,
    now: Optional[datetime] = None,
) -> models.Booking:
    booking = get_booking(db, booking_id)
    if booking.user_id != ctx.user_id:
        raise Forbidden("Only the customer who made this booking can cancel it")
    if not reason or not reason.strip():
        raise ValidationError("A cancellation reason is required")

    now = now or local_now()
    notice = timedelta(hours=settings.CANCELLATION_NOTICE_HOURS)

    # Same lock as approval, so the recorded previous status is the committed one
    with availability.slot_lock(db, booking.facility_id), _unit_of_work(db):
        db.refresh(booking)
        ensure_transition(booking, BookingStatus.CANCELLATION_REQUESTED)
        if booking_start(booking) - now <= notice:
            raise InvalidTransition(
                f"Cancellation must be requested more than {settings.CANCELLATION_NOTICE_HOURS:g} "
                f"hour(s) before the booking starts"
            )

        booking.status_before_cancellation = booking.status
        transition(booking, BookingStatus.CANCELLATION_REQUESTED)
        booking.cancellation_reason = reason.strip()
        booking.cancellation_requested_at = now
        db.commit()
    db.refresh(booking)
    return booking


def resolve_cancellation(db: Session, ctx: AuthContext, booking_id: int, grant: bool) -> models.Booking:
    booking = _owned_booking(db, ctx, booking_id)
    with availability.slot_lock(db, booking.facility_id), _unit_of_work(db):
        db.refresh(booking)
        if booking.status != BookingStatus.CANCELLATION_REQUESTED:
            raise InvalidTransition(f"Booking {booking.id} has no pending cancellation request")

        if grant:
            transition(booking, BookingStatus.CANCELLED)
            if booking.payment_status == PaymentStatus.PAID:
                booking.payment_status = PaymentStatus.REFUNDED
        else:
            transition(booking, booking.status_before_cancellation or BookingStatus.APPROVED)
        booking.status_before_cancellation = None
        db.commit()
    db.refresh(booking)
    return booking


def mark_completed(
    db: Session, ctx: AuthContext, booking_id: int, now: Optional[datetime] = None
) -> models.Booking:
    booking = _owned_booking(db, ctx, booking_id)
    ensure_transition(booking, BookingStatus.COMPLETED)
    if booking_end(booking) > (now or local_now()):
        raise InvalidTransition(f"Booking {booking.id} has not ended yet")

    with _unit_of_work(db):
        transition(booking, BookingStatus.COMPLETED)
        db.commit()
    db.refresh(booking)
    return booking


def complete_elapsed_bookings(db: Session, now: Optional[datetime] = None) -> int:
    """Moves approved bookings whose end time has passed to completed."""
    now = now or local_now()
    candidates = (
        db.query(models.Booking)
        .filter(
            models.Booking.status == BookingStatus.APPROVED,
            models.Booking.booking_date <= now.date(),
        )
        .all()
    )
    completed = 0
    with _unit_of_work(db):
        for booking in candidates:
            if booking_end(booking) <= now:
                transition(booking, BookingStatus.COMPLETED)
                completed += 1
        if completed:
            db.commit()
    return completed


def update_payment_status(
    db: Session, ctx: AuthContext, booking_id: int, payment_status: PaymentStatus
) -> models.Booking:
    booking = _owned_booking(db, ctx, booking_id)
    if booking.status not in PAYABLE_STATUSES:
        raise InvalidTransition(
            f"Payment cannot be recorded for a booking that is '{booking.status.value}'"
        )
    if payment_status not in PAYMENT_TRANSITIONS[booking.payment_status]:
        raise InvalidTransition(
            f"Payment status cannot move from '{booking.payment_status.value}' to '{payment_status.value}'"
        )

    with _unit_of_work(db):
        booking.payment_status = payment_status
        db.commit()
    db.refresh(booking)
    logger.info(f"Booking {booking.id}: payment {payment_status.value}")
    return booking


# Listings
def bookings_for_user(db: Session, user_id: int) -> List[models.Booking]:
    return (
        db.query(models.Booking)
        .filter(models.Booking.user_id == user_id)
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )


def bookings_for_facility(db: Session, facility_id: int) -> List[models.Booking]:
    return (
        db.query(models.Booking)
        .filter(models.Booking.facility_id == facility_id)
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )


def bookings_for_business(db: Session, business_id: int) -> List[models.Booking]:
    return (
        db.query(models.Booking)
        .join(models.Facility, models.Booking.facility_id == models.Facility.id)
        .filter(models.Facility.business_id == business_id)
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )
