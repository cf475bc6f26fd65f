# sportbook/services/ratings.py
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sportbook import models
from sportbook.exceptions import NotFound, ValidationError

logger = logging.getLogger(__name__)


def facility_rating(db: Session, facility_id: int) -> dict:
    """Average (one decimal) and count of a facility's reviews, recomputed on every call."""
    average, count = (
        db.query(func.avg(models.Review.rating), func.count(models.Review.id))
        .filter(models.Review.facility_id == facility_id)
        .one()
    )
    if not count:
        return {"average_rating": 0, "review_count": 0}
    # Half-up, so 4.25 shows as 4.3
    rounded = Decimal(str(average)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return {"average_rating": float(rounded), "review_count": count}


def create_review(
    db: Session,
    user_id: int,
    facility_id: int,
    rating: int,
    comment: Optional[str] = None,
    booking_id: Optional[int] = None,
) -> models.Review:
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be a whole number between 1 and 5")

    if db.get(models.Facility, facility_id) is None:
        raise NotFound("Facility not found")

    if booking_id is not None:
        booking = db.get(models.Booking, booking_id)
        if booking is None or booking.user_id != user_id or booking.facility_id != facility_id:
            raise ValidationError("Booking does not match this reviewer and facility")

    review = models.Review(
        user_id=user_id,
        facility_id=facility_id,
        booking_id=booking_id,
        rating=rating,
        comment=comment,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info(f"Review {review.id} ({rating}/5) added to facility {facility_id} by user {user_id}")
    return review


def list_reviews(db: Session, facility_id: int) -> List[models.Review]:
    return (
        db.query(models.Review)
        .filter(models.Review.facility_id == facility_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )
