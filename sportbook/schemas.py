# sportbook/schemas.py
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from sportbook.models import BookingStatus, PaymentStatus, Role

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# "HH:MM" on a 24h clock; "24:00" closes the day
TIME_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$|^24:00$")


def check_time(value: str) -> str:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must use the 'HH:MM' format")
    return value


class APIModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Users
class UserCreate(APIModel):
    username: str
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role

class UserLogin(APIModel):
    username: str
    password: str

class RoleUpdate(APIModel):
    role: Role

class UserResponse(APIModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    created_at: Optional[datetime] = None

class AuthResponse(APIModel):
    # OAuth2 clients expect these two in snake_case
    access_token: str = Field(alias="access_token")
    token_type: str = Field("bearer", alias="token_type")
    user: UserResponse


# Businesses
class DayHours(APIModel):
    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, v):
        return check_time(v)

def check_operating_hours(hours):
    if hours is None:
        return hours
    unknown = [day for day in hours if day not in WEEKDAYS]
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
    for day, slot in hours.items():
        if slot.open >= slot.close:
            raise ValueError(f"{day}: closing time must be after opening time")
    return hours

class BusinessCreate(APIModel):
    business_name: str
    description: Optional[str] = None
    address: str
    phone: Optional[str] = None
    website: Optional[str] = None
    operating_hours: Optional[Dict[str, DayHours]] = None

    @field_validator("operating_hours")
    @classmethod
    def validate_operating_hours(cls, v):
        return check_operating_hours(v)

class BusinessUpdate(APIModel):
    business_name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    operating_hours: Optional[Dict[str, DayHours]] = None

    @field_validator("operating_hours")
    @classmethod
    def validate_operating_hours(cls, v):
        return check_operating_hours(v)

class BusinessResponse(APIModel):
    id: int
    user_id: int
    business_name: str
    description: Optional[str] = None
    address: str
    phone: Optional[str] = None
    website: Optional[str] = None
    operating_hours: Optional[Dict[str, DayHours]] = None

class BusinessStats(APIModel):
    total_facilities: int
    active_facilities: int
    total_bookings: int
    pending_bookings: int
    cancellation_requests: int
    monthly_revenue: Decimal


# Facilities
class FacilityCreate(APIModel):
    name: str
    description: Optional[str] = None
    sport_type: str
    capacity: int
    price_per_hour: Decimal
    amenities: List[str] = []
    images: List[str] = []
    operating_hours: Optional[Dict[str, DayHours]] = None

    @field_validator("operating_hours")
    @classmethod
    def validate_operating_hours(cls, v):
        return check_operating_hours(v)

class FacilityUpdate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    sport_type: Optional[str] = None
    capacity: Optional[int] = None
    price_per_hour: Optional[Decimal] = None
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    is_active: Optional[bool] = None
    operating_hours: Optional[Dict[str, DayHours]] = None

    @field_validator("operating_hours")
    @classmethod
    def validate_operating_hours(cls, v):
        return check_operating_hours(v)

class FacilityResponse(APIModel):
    id: int
    business_id: int
    name: str
    description: Optional[str] = None
    sport_type: str
    capacity: int
    price_per_hour: Decimal
    amenities: List[str] = []
    images: List[str] = []
    is_active: bool
    operating_hours: Optional[Dict[str, DayHours]] = None

class RatingSummary(APIModel):
    average_rating: float
    review_count: int

class FacilityDetail(FacilityResponse):
    business: BusinessResponse
    average_rating: float
    review_count: int

class AvailabilityResponse(APIModel):
    available: bool

class TimeRange(APIModel):
    start_time: str
    end_time: str


# Bookings
class BookingCreate(APIModel):
    facility_id: int
    booking_date: date
    start_time: str
    end_time: str
    duration: int
    customer_name: str
    customer_phone: str
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return check_time(v)

class CancellationRequest(APIModel):
    reason: str

class CancellationResolution(APIModel):
    grant: bool

class PaymentUpdate(APIModel):
    payment_status: PaymentStatus

class BookingResponse(APIModel):
    id: int
    user_id: int
    facility_id: int
    booking_date: date
    start_time: str
    end_time: str
    duration: int
    total_price: Decimal
    customer_name: str
    customer_phone: str
    status: BookingStatus
    payment_status: PaymentStatus
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_requested_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class BookingWithFacility(BookingResponse):
    facility: FacilityResponse
    business: BusinessResponse

class BookingWithCustomer(BookingResponse):
    facility: FacilityResponse
    user: UserResponse


# Reviews
class ReviewCreate(APIModel):
    facility_id: int
    booking_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None

class Reviewer(APIModel):
    id: int
    display_name: str

class ReviewResponse(APIModel):
    id: int
    user_id: int
    facility_id: int
    booking_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

class ReviewWithUser(ReviewResponse):
    user: Reviewer
