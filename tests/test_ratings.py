import pytest

from sportbook import models
from sportbook.exceptions import NotFound, ValidationError
from sportbook.services import ratings
from tests.conftest import add_booking


def test_rating_aggregate(db, customer, facility):
    for rating in (5, 4, 3):
        ratings.create_review(db, customer.id, facility.id, rating)

    assert ratings.facility_rating(db, facility.id) == {"average_rating": 4.0, "review_count": 3}


def test_rating_rounds_to_one_decimal(db, customer, other_customer, facility):
    for rating in (5, 4, 4):
        ratings.create_review(db, customer.id, facility.id, rating)

    assert ratings.facility_rating(db, facility.id)["average_rating"] == 4.3


def test_rating_ties_round_half_up(db, customer, facility):
    for rating in (5, 4, 4, 4):
        ratings.create_review(db, customer.id, facility.id, rating)

    assert ratings.facility_rating(db, facility.id) == {"average_rating": 4.3, "review_count": 4}


def test_no_reviews(db, facility):
    assert ratings.facility_rating(db, facility.id) == {"average_rating": 0, "review_count": 0}


def test_rating_reflects_new_reviews_immediately(db, customer, facility):
    ratings.create_review(db, customer.id, facility.id, 2)
    assert ratings.facility_rating(db, facility.id)["average_rating"] == 2.0

    ratings.create_review(db, customer.id, facility.id, 4, comment="Better lighting now")
    assert ratings.facility_rating(db, facility.id) == {"average_rating": 3.0, "review_count": 2}


@pytest.mark.parametrize("rating", [0, 6, -1])
def test_rating_out_of_range(db, customer, facility, rating):
    with pytest.raises(ValidationError):
        ratings.create_review(db, customer.id, facility.id, rating)


def test_review_for_unknown_facility(db, customer, facility):
    with pytest.raises(NotFound):
        ratings.create_review(db, customer.id, facility.id + 50, 5)


def test_review_may_reference_own_booking(db, customer, facility):
    booking = add_booking(db, facility, customer, "10:00", "12:00", status=models.BookingStatus.COMPLETED)

    review = ratings.create_review(db, customer.id, facility.id, 5, booking_id=booking.id)
    assert review.booking_id == booking.id


def test_review_cannot_reference_someone_elses_booking(db, customer, other_customer, facility):
    booking = add_booking(db, facility, other_customer, "10:00", "12:00")

    with pytest.raises(ValidationError):
        ratings.create_review(db, customer.id, facility.id, 5, booking_id=booking.id)


def test_duplicate_reviews_are_allowed(db, customer, facility):
    ratings.create_review(db, customer.id, facility.id, 5)
    ratings.create_review(db, customer.id, facility.id, 1)

    assert [r.rating for r in ratings.list_reviews(db, facility.id)] == [1, 5]
