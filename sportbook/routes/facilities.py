# sportbook/routes/facilities.py
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sportbook import auth, database, schemas
from sportbook.exceptions import ValidationError
from sportbook.schemas import check_time
from sportbook.services import availability, businesses, directory, ratings

router = APIRouter(
    prefix="/facilities",
    tags=["Facilities"]
)


def facility_detail(described: dict) -> schemas.FacilityDetail:
    return schemas.FacilityDetail(
        **schemas.FacilityResponse.model_validate(described["facility"]).model_dump(),
        business=schemas.BusinessResponse.model_validate(described["business"]),
        average_rating=described["average_rating"],
        review_count=described["review_count"],
    )


def _parse_time(value: str) -> str:
    try:
        return check_time(value)
    except ValueError as e:
        raise ValidationError(str(e))


# Public - Search Active Facilities
@router.get("/search", response_model=List[schemas.FacilityDetail])
def search_facilities(
    location: Optional[str] = None,
    sport_type: Optional[str] = Query(None, alias="sportType"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice"),
    db: Session = Depends(database.get_db),
):
    results = directory.search_facilities(
        db, location=location, sport_type=sport_type, min_price=min_price, max_price=max_price
    )
    return [facility_detail(r) for r in results]


# Business Only - Create a Facility
@router.post("/", response_model=schemas.FacilityResponse)
def create_facility(
    payload: schemas.FacilityCreate,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    business = businesses.find_business_for_user(db, ctx.user_id)
    if business is None:
        raise ValidationError("Business profile required")
    return directory.create_facility(db, business, **payload.model_dump())


# Public - List a Business's Facilities
@router.get("/business/{business_id}", response_model=List[schemas.FacilityResponse])
def list_business_facilities(business_id: int, db: Session = Depends(database.get_db)):
    businesses.get_business(db, business_id)
    return directory.list_by_business(db, business_id)


@router.get("/{facility_id}", response_model=schemas.FacilityDetail)
def read_facility(facility_id: int, db: Session = Depends(database.get_db)):
    facility = directory.get_facility(db, facility_id)
    return facility_detail(directory.describe(db, facility))


# Owner Only - Update a Facility
@router.patch("/{facility_id}", response_model=schemas.FacilityResponse)
def update_facility(
    facility_id: int,
    payload: schemas.FacilityUpdate,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    businesses.owned_facility(db, ctx, facility_id)
    return directory.update_facility(db, facility_id, **payload.model_dump(exclude_unset=True))


# Owner Only - Deactivate a Facility
@router.delete("/{facility_id}")
def deactivate_facility(
    facility_id: int,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    businesses.owned_facility(db, ctx, facility_id)
    directory.deactivate_facility(db, facility_id)
    return {"message": "Facility deactivated successfully"}


@router.get("/{facility_id}/availability", response_model=schemas.AvailabilityResponse)
def check_availability(
    facility_id: int,
    booking_date: date = Query(..., alias="date"),
    start_time: str = Query(..., alias="startTime"),
    end_time: str = Query(..., alias="endTime"),
    db: Session = Depends(database.get_db),
):
    directory.get_facility(db, facility_id)
    start_time, end_time = _parse_time(start_time), _parse_time(end_time)
    if availability.to_minutes(end_time) <= availability.to_minutes(start_time):
        raise ValidationError("End time must be after start time")
    return {
        "available": availability.check_time_slot_availability(
            db, facility_id, booking_date, start_time, end_time
        )
    }


@router.get("/{facility_id}/booked-slots", response_model=List[schemas.TimeRange])
def list_booked_slots(
    facility_id: int,
    booking_date: date = Query(..., alias="date"),
    db: Session = Depends(database.get_db),
):
    directory.get_facility(db, facility_id)
    return [
        {"start_time": start, "end_time": end}
        for start, end in availability.booked_slots(db, facility_id, booking_date)
    ]


@router.get("/{facility_id}/rating", response_model=schemas.RatingSummary)
def read_rating(facility_id: int, db: Session = Depends(database.get_db)):
    directory.get_facility(db, facility_id)
    return ratings.facility_rating(db, facility_id)
