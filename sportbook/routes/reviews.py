# sportbook/routes/reviews.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sportbook import auth, database, schemas
from sportbook.services import directory, ratings

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"]
)


@router.post("/", response_model=schemas.ReviewResponse)
def create_review(
    payload: schemas.ReviewCreate,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return ratings.create_review(
        db,
        ctx.user_id,
        payload.facility_id,
        payload.rating,
        comment=payload.comment,
        booking_id=payload.booking_id,
    )


@router.get("/facility/{facility_id}", response_model=List[schemas.ReviewWithUser])
def list_facility_reviews(facility_id: int, db: Session = Depends(database.get_db)):
    directory.get_facility(db, facility_id)
    return [
        schemas.ReviewWithUser(
            **schemas.ReviewResponse.model_validate(review).model_dump(),
            user=schemas.Reviewer(id=review.user.id, display_name=review.user.display_name),
        )
        for review in ratings.list_reviews(db, facility_id)
    ]
