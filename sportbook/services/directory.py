# sportbook/services/directory.py
"""Facility registry. Callers establish ownership before mutating anything here."""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from sportbook import models
from sportbook.exceptions import NotFound, ValidationError
from sportbook.services import ratings

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "description",
    "sport_type",
    "capacity",
    "price_per_hour",
    "amenities",
    "images",
    "is_active",
    "operating_hours",
)


def _validate(capacity: Optional[int], price_per_hour: Optional[Decimal]):
    if capacity is not None and capacity <= 0:
        raise ValidationError("Capacity must be a positive number")
    if price_per_hour is not None and Decimal(price_per_hour) <= 0:
        raise ValidationError("Price per hour must be a positive number")


def create_facility(db: Session, business: models.Business, **data) -> models.Facility:
    _validate(data.get("capacity"), data.get("price_per_hour"))
    if not data.get("operating_hours"):
        data["operating_hours"] = business.operating_hours

    facility = models.Facility(business_id=business.id, is_active=True, **data)
    db.add(facility)
    db.commit()
    db.refresh(facility)
    logger.info(f"Facility {facility.id} ({facility.name}) created for business {business.id}")
    return facility


def get_facility(db: Session, facility_id: int) -> models.Facility:
    facility = db.get(models.Facility, facility_id)
    if facility is None:
        raise NotFound("Facility not found")
    return facility


def list_by_business(db: Session, business_id: int) -> List[models.Facility]:
    return (
        db.query(models.Facility)
        .filter(models.Facility.business_id == business_id)
        .order_by(models.Facility.id)
        .all()
    )


def update_facility(db: Session, facility_id: int, **updates) -> models.Facility:
    facility = get_facility(db, facility_id)
    _validate(updates.get("capacity"), updates.get("price_per_hour"))

    for key, value in updates.items():
        if key in UPDATABLE_FIELDS and value is not None:
            setattr(facility, key, value)

    db.commit()
    db.refresh(facility)
    return facility


def deactivate_facility(db: Session, facility_id: int) -> None:
    # Soft delete: bookings and reviews keep pointing at the row
    facility = get_facility(db, facility_id)
    facility.is_active = False
    db.commit()
    logger.info(f"Facility {facility_id} deactivated")


def search_facilities(
    db: Session,
    location: Optional[str] = None,
    sport_type: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
) -> List[dict]:
    """
    Full scan over active facilities; each hit carries its business and rating aggregate.
    """
    results = []
    facilities = (
        db.query(models.Facility)
        .filter(models.Facility.is_active.is_(True))
        .order_by(models.Facility.id)
        .all()
    )
    for facility in facilities:
        business = facility.business
        if business is None:
            continue
        if location and location.lower() not in business.address.lower():
            continue
        if sport_type and facility.sport_type != sport_type:
            continue
        if min_price is not None and facility.price_per_hour < Decimal(min_price):
            continue
        if max_price is not None and facility.price_per_hour > Decimal(max_price):
            continue

        results.append(describe(db, facility))
    return results


def describe(db: Session, facility: models.Facility) -> dict:
    rating = ratings.facility_rating(db, facility.id)
    return {
        "facility": facility,
        "business": facility.business,
        "average_rating": rating["average_rating"],
        "review_count": rating["review_count"],
    }
