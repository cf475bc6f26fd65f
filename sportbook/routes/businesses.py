# sportbook/routes/businesses.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sportbook import auth, database, schemas
from sportbook.services import businesses

router = APIRouter(
    prefix="/businesses",
    tags=["Businesses"]
)


@router.post("/", response_model=schemas.BusinessResponse)
def create_business(
    payload: schemas.BusinessCreate,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    return businesses.create_business(db, ctx, **payload.model_dump())


@router.get("/my", response_model=schemas.BusinessResponse)
def read_my_business(
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return businesses.get_my_business(db, ctx)


@router.patch("/my", response_model=schemas.BusinessResponse)
def update_my_business(
    payload: schemas.BusinessUpdate,
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    return businesses.update_my_business(db, ctx, **payload.model_dump(exclude_unset=True))


@router.get("/my/stats", response_model=schemas.BusinessStats)
def read_my_stats(
    ctx: auth.AuthContext = Depends(auth.require_business),
    db: Session = Depends(database.get_db),
):
    business = businesses.get_my_business(db, ctx)
    return businesses.business_stats(db, business)
