import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test-unused.db")

from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from sportbook import auth, database, models
from sportbook.auth import AuthContext
from sportbook.database import Base, build_engine
from sportbook.main import app
from sportbook.sessions import InMemorySessionStore

# Thursday; the fixed "now" used by service tests sits well before it
BOOKING_DAY = date(2025, 5, 1)
NOW = datetime(2025, 4, 20, 9, 0)

FULL_WEEK = {
    day: {"open": "06:00", "close": "24:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


@pytest.fixture
def engine(tmp_path):
    # File-backed so worker threads in the concurrency tests share one database
    engine = build_engine(f"sqlite:///{tmp_path / 'sportbook-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def client(session_factory, session_store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[auth.get_session_store] = lambda: session_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, username, role=models.Role.CUSTOMER, **extra):
    user = models.User(
        username=username,
        email=f"{username}@example.com",
        password="not-a-real-hash",
        role=role,
        **extra,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def ctx_for(user):
    return AuthContext(user_id=user.id, role=user.role, session_id=f"session-{user.id}")


@pytest.fixture
def customer(db):
    return make_user(db, "customer1", first_name="John", last_name="Doe")


@pytest.fixture
def other_customer(db):
    return make_user(db, "customer2")


@pytest.fixture
def owner(db):
    return make_user(db, "business1", role=models.Role.BUSINESS)


@pytest.fixture
def business(db, owner):
    business = models.Business(
        user_id=owner.id,
        business_name="Arena Sport Center",
        address="Jl. Sudirman No. 123, Jakarta Pusat",
        phone="021-1234567",
        operating_hours=FULL_WEEK,
    )
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


@pytest.fixture
def facility(db, business):
    facility = models.Facility(
        business_id=business.id,
        name="Lapangan Futsal A",
        sport_type="futsal",
        capacity=12,
        price_per_hour=Decimal("100000"),
        amenities=["parking", "bathroom"],
        images=[],
        is_active=True,
        operating_hours=FULL_WEEK,
    )
    db.add(facility)
    db.commit()
    db.refresh(facility)
    return facility


def add_booking(db, facility, user, start_time, end_time, status=models.BookingStatus.PENDING,
                booking_date=BOOKING_DAY, **extra):
    start_hour, end_hour = int(start_time[:2]), int(end_time[:2])
    booking = models.Booking(
        user_id=user.id,
        facility_id=facility.id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        duration=end_hour - start_hour,
        total_price=facility.price_per_hour * (end_hour - start_hour),
        customer_name="John Doe",
        customer_phone="0812345678",
        status=status,
        **extra,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
