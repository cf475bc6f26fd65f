# sportbook/routes/bookings.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sportbook import auth, database, models, schemas
from sportbook.services import bookings, businesses

router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"]
)


def with_facility(booking: models.Booking) -> schemas.BookingWithFacility:
    return schemas.BookingWithFacility(
        **schemas.BookingResponse.model_validate(booking).model_dump(),
        facility=schemas.FacilityResponse.model_validate(booking.facility),
        business=schemas.BusinessResponse.model_validate(booking.facility.business),
    )


def with_customer(booking: models.Booking) -> schemas.BookingWithCustomer:
    return schemas.BookingWithCustomer(
        **schemas.BookingResponse.model_validate(booking).model_dump(),
        facility=schemas.FacilityResponse.model_validate(booking.facility),
        user=schemas.UserResponse.model_validate(booking.user),
    )


# Customer - Request a Booking
@router.post("/", response_model=schemas.BookingResponse)
def create_booking(
    payload: schemas.BookingCreate,
    ctx: auth.AuthContext = Depends(auth.require_customer),
    db: Session = Depends(database.get_db),
):
    return bookings.create_booking(db, ctx, **payload.model_dump())


# Customer - List My Bookings (newest first)
@router.get("/my", response_model=List[schemas.BookingWithFacility])
def list_my_bookings(
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    bookings.complete_elapsed_bookings(db)
    return [with_facility(b) for b in bookings.bookings_for_user(db, ctx.user_id)]


# Owner - List Bookings Across a Business
@router.get("/business/{business_id}", response_model=List[schemas.BookingWithCustomer])
def list_business_bookings(
    business_id: int,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    businesses.ensure_owner(ctx, businesses.get_business(db, business_id))
    bookings.complete_elapsed_bookings(db)
    return [with_customer(b) for b in bookings.bookings_for_business(db, business_id)]


# Owner - List Bookings of One Facility
@router.get("/facility/{facility_id}", response_model=List[schemas.BookingWithCustomer])
def list_facility_bookings(
    facility_id: int,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    businesses.owned_facility(db, ctx, facility_id)
    bookings.complete_elapsed_bookings(db)
    return [with_customer(b) for b in bookings.bookings_for_facility(db, facility_id)]


@router.get("/{booking_id}", response_model=schemas.BookingWithFacility)
def read_booking(
    booking_id: int,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    bookings.complete_elapsed_bookings(db)
    return with_facility(bookings.get_booking_for(db, ctx, booking_id))


@router.patch("/{booking_id}/approve", response_model=schemas.BookingResponse)
def approve_booking(
    booking_id: int,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return bookings.approve_booking(db, ctx, booking_id)


@router.patch("/{booking_id}/reject", response_model=schemas.BookingResponse)
def reject_booking(
    booking_id: int,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return bookings.reject_booking(db, ctx, booking_id)


@router.patch("/{booking_id}/request-cancellation", response_model=schemas.BookingResponse)
def request_cancellation(
    booking_id: int,
    payload: schemas.CancellationRequest,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return bookings.request_cancellation(db, ctx, booking_id, payload.reason)


@router.patch("/{booking_id}/resolve-cancellation", response_model=schemas.BookingResponse)
def resolve_cancellation(
    booking_id: int,
    payload: schemas.CancellationResolution,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return bookings.resolve_cancellation(db, ctx, booking_id, payload.grant)


@router.patch("/{booking_id}/complete", response_model=schemas.BookingResponse)
def complete_booking(
    booking_id: int,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return bookings.mark_completed(db, ctx, booking_id)


@router.patch("/{booking_id}/payment", response_model=schemas.BookingResponse)
def update_payment(
    booking_id: int,
    payload: schemas.PaymentUpdate,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return bookings.update_payment_status(db, ctx, booking_id, payload.payment_status)
