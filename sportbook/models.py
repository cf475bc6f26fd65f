# sportbook/models.py
import datetime
import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from sportbook.database import Base


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    BUSINESS = "business"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLATION_REQUESTED = "cancellation_requested"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


def _enum_column(enum_cls, **kwargs):
    # Stored as plain strings ("pending", "approved", ...) so the table stays portable
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        **kwargs,
    )


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    role = _enum_column(Role, nullable=False, default=Role.CUSTOMER)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    businesses = relationship("Business", back_populates="owner")

    @property
    def display_name(self) -> str:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.username


class Business(Base):
    __tablename__ = "businesses"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    business_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    operating_hours = Column(JSON, nullable=True)  # {"monday": {"open": "06:00", "close": "22:00"}, ...}
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    owner = relationship("User", back_populates="businesses")
    facilities = relationship("Facility", back_populates="business")


class Facility(Base):
    __tablename__ = "facilities"
    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    sport_type = Column(String, nullable=False, index=True)  # futsal, badminton, basketball, ...
    capacity = Column(Integer, nullable=False)
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    amenities = Column(JSON, default=list)  # ["parking", "bathroom", "wifi", "canteen"]
    images = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    operating_hours = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    business = relationship("Business", back_populates="facilities")
    bookings = relationship("Booking", back_populates="facility")
    reviews = relationship("Review", back_populates="facility")


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)  # "HH:MM", "24:00" allowed
    duration = Column(Integer, nullable=False)  # hours
    total_price = Column(Numeric(10, 2), nullable=False)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    status = _enum_column(BookingStatus, nullable=False, default=BookingStatus.PENDING)
    # Status held before a cancellation request, restored when the owner denies it
    status_before_cancellation = _enum_column(BookingStatus, nullable=True)
    payment_status = _enum_column(PaymentStatus, nullable=False, default=PaymentStatus.PENDING)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_requested_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User")
    facility = relationship("Facility", back_populates="bookings")


class Review(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User")
    facility = relationship("Facility", back_populates="reviews")


class SessionRecord(Base):
    __tablename__ = "sessions"
    sid = Column(String, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
