# sportbook/services/businesses.py
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sportbook import models
from sportbook.auth import AuthContext, require_role
from sportbook.exceptions import Conflict, Forbidden, NotFound, ValidationError
from sportbook.services import directory
from sportbook.services.bookings import local_now

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("business_name", "description", "address", "phone", "website", "operating_hours")


def get_business(db: Session, business_id: int) -> models.Business:
    business = db.get(models.Business, business_id)
    if business is None:
        raise NotFound("Business not found")
    return business


def find_business_for_user(db: Session, user_id: int) -> Optional[models.Business]:
    return (
        db.query(models.Business)
        .filter(models.Business.user_id == user_id)
        .order_by(models.Business.id)
        .first()
    )


def get_my_business(db: Session, ctx: AuthContext) -> models.Business:
    business = find_business_for_user(db, ctx.user_id)
    if business is None:
        raise NotFound("Business profile not found")
    return business


def create_business(db: Session, ctx: AuthContext, **data) -> models.Business:
    require_role(ctx, models.Role.BUSINESS)
    if find_business_for_user(db, ctx.user_id) is not None:
        raise Conflict("A business profile already exists for this account")
    if not data.get("business_name") or not data.get("address"):
        raise ValidationError("Business name and address are required")

    business = models.Business(user_id=ctx.user_id, **data)
    db.add(business)
    db.commit()
    db.refresh(business)
    logger.info(f"Business {business.id} created for user {ctx.user_id}")
    return business


def update_my_business(db: Session, ctx: AuthContext, **updates) -> models.Business:
    require_role(ctx, models.Role.BUSINESS)
    business = get_my_business(db, ctx)
    for key, value in updates.items():
        if key in UPDATABLE_FIELDS and value is not None:
            setattr(business, key, value)
    db.commit()
    db.refresh(business)
    return business


def ensure_owner(ctx: AuthContext, business: models.Business) -> models.Business:
    require_role(ctx, models.Role.BUSINESS)
    if business.user_id != ctx.user_id:
        raise Forbidden("You do not own this business")
    return business


def owned_facility(db: Session, ctx: AuthContext, facility_id: int) -> models.Facility:
    facility = directory.get_facility(db, facility_id)
    ensure_owner(ctx, facility.business)
    return facility


def business_stats(db: Session, business: models.Business, now: Optional[datetime] = None) -> dict:
    now = now or local_now()
    month_start = now.date().replace(day=1)
    month_end = (month_start + timedelta(days=32)).replace(day=1)

    facilities = directory.list_by_business(db, business.id)
    facility_ids = [f.id for f in facilities]

    bookings = db.query(models.Booking).filter(models.Booking.facility_id.in_(facility_ids))
    revenue = (
        db.query(func.coalesce(func.sum(models.Booking.total_price), 0))
        .filter(
            models.Booking.facility_id.in_(facility_ids),
            models.Booking.payment_status == models.PaymentStatus.PAID,
            models.Booking.booking_date >= month_start,
            models.Booking.booking_date < month_end,
        )
        .scalar()
    )

    return {
        "total_facilities": len(facilities),
        "active_facilities": sum(1 for f in facilities if f.is_active),
        "total_bookings": bookings.count(),
        "pending_bookings": bookings.filter(models.Booking.status == models.BookingStatus.PENDING).count(),
        "cancellation_requests": bookings.filter(
            models.Booking.status == models.BookingStatus.CANCELLATION_REQUESTED
        ).count(),
        "monthly_revenue": Decimal(str(revenue)),
    }


def switch_role(db: Session, user_id: int, role: models.Role) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound("User not found")
    previous = user.role
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info(f"User {user_id} switched role {previous.value} -> {role.value}")
    return user
