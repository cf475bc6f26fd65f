import threading
from concurrent.futures import ThreadPoolExecutor

from sportbook.exceptions import Conflict
from sportbook.models import BookingStatus
from sportbook.services import availability, bookings
from tests.conftest import BOOKING_DAY, NOW, add_booking, ctx_for, make_user

WORKERS = 8


def run_together(session_factory, jobs):
    """Runs every job on its own DB session, released at the same moment."""
    barrier = threading.Barrier(len(jobs))

    def run(job):
        session = session_factory()
        try:
            barrier.wait()
            return job(session)
        except Conflict as exc:
            return exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        return list(pool.map(run, jobs))


def blocking_ranges(session_factory, facility_id):
    session = session_factory()
    try:
        return availability.booked_slots(session, facility_id, BOOKING_DAY)
    finally:
        session.close()


def test_concurrent_approvals_never_double_book(db, session_factory, customer, owner, facility):
    # Overlapping pending requests for the same afternoon
    requests = [
        add_booking(db, facility, customer, f"{13 + i % 2:02d}:00", f"{15 + i % 2:02d}:00")
        for i in range(WORKERS)
    ]
    owner_ctx = ctx_for(owner)

    results = run_together(
        session_factory,
        [lambda s, booking_id=b.id: bookings.approve_booking(s, owner_ctx, booking_id) for b in requests],
    )

    approved = [r for r in results if not isinstance(r, Conflict)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(approved) == 1
    assert len(conflicts) == WORKERS - 1
    assert len(blocking_ranges(session_factory, facility.id)) == 1


def test_concurrent_creations_against_an_approved_slot(db, session_factory, facility, customer):
    add_booking(db, facility, customer, "10:00", "12:00", status=BookingStatus.APPROVED)
    customers = [make_user(db, f"rush{i}") for i in range(WORKERS)]

    def create(user, start_time):
        def job(session):
            return bookings.create_booking(
                session,
                ctx_for(user),
                facility_id=facility.id,
                booking_date=BOOKING_DAY,
                start_time=start_time,
                end_time=f"{int(start_time[:2]) + 1:02d}:00",
                duration=1,
                customer_name=user.username,
                customer_phone="0800",
                now=NOW,
            )
        return job

    # Half the requests collide with the approved booking, half target free hours
    jobs = [create(user, "11:00" if i % 2 else f"{14 + i:02d}:00") for i, user in enumerate(customers)]
    results = run_together(session_factory, jobs)

    conflicts = [r for r in results if isinstance(r, Conflict)]
    created = [r for r in results if not isinstance(r, Conflict)]
    assert len(conflicts) == WORKERS // 2
    assert all(b.status == BookingStatus.PENDING for b in created)



def test_cancellation_request_sees_an_approval_committed_meanwhile(db, session_factory, customer, owner, facility):
    booking = add_booking(db, facility, customer, "10:00", "12:00")

    # The owner approves on another connection while the customer's session still holds "pending"
    owner_session = session_factory()
    try:
        bookings.approve_booking(owner_session, ctx_for(owner), booking.id)
    finally:
        owner_session.close()

    requested = bookings.request_cancellation(db, ctx_for(customer), booking.id, "rain", now=NOW)

    assert requested.status == BookingStatus.CANCELLATION_REQUESTED
    assert requested.status_before_cancellation == BookingStatus.APPROVED
    assert not availability.check_time_slot_availability(db, facility.id, BOOKING_DAY, "10:00", "12:00")

    denied = bookings.resolve_cancellation(db, ctx_for(owner), booking.id, grant=False)
    assert denied.status == BookingStatus.APPROVED
