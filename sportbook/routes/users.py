# sportbook/routes/users.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from sportbook import auth, database, models, schemas
from sportbook.config import settings
from sportbook.exceptions import Conflict, Unauthenticated, ValidationError
from sportbook.services import businesses
from sportbook.sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


def _start_session(response: Response, store: SessionStore, user: models.User) -> dict:
    token = auth.open_session(store, user.id)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        samesite="strict",
        max_age=int(settings.SESSION_EXPIRE_MINUTES * 60),
    )
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": user,
    }


# User Registration (customer or business)
@router.post("/register", response_model=schemas.AuthResponse)
def register_user(
    user: schemas.UserCreate,
    response: Response,
    db: Session = Depends(database.get_db),
    store: SessionStore = Depends(auth.get_session_store),
):
    if not user.username.strip() or not user.password:
        raise ValidationError("Username and password are required")

    existing_user = db.query(models.User).filter(
        or_(models.User.username == user.username, models.User.email == user.email)
    ).first()
    if existing_user:
        raise Conflict("Username or email already registered")

    new_user = models.User(
        username=user.username.strip(),
        email=user.email,
        password=auth.get_password_hash(user.password),
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info(f"Registered user {new_user.id} ({new_user.username}) as {new_user.role.value}")

    return _start_session(response, store, new_user)


# User Login
@router.post("/login", response_model=schemas.AuthResponse)
def login_user(
    user: schemas.UserLogin,
    response: Response,
    db: Session = Depends(database.get_db),
    store: SessionStore = Depends(auth.get_session_store),
):
    db_user = db.query(models.User).filter(models.User.username == user.username).first()
    if not db_user or not auth.verify_password(user.password, db_user.password):
        logger.warning(f"Failed login for {user.username!r}")
        raise Unauthenticated("Invalid credentials")

    logger.info(f"User {db_user.id} logged in")
    return _start_session(response, store, db_user)


@router.post("/logout")
def logout_user(
    request: Request,
    response: Response,
    bearer: Optional[str] = Depends(auth.oauth2_scheme),
    store: SessionStore = Depends(auth.get_session_store),
):
    if auth.close_session(store, auth.request_token(request, bearer)):
        logger.info("Session closed on logout")
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=schemas.UserResponse)
def read_current_user(
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return db.get(models.User, ctx.user_id)


@router.patch("/me/role", response_model=schemas.UserResponse)
def switch_role(
    payload: schemas.RoleUpdate,
    ctx: auth.AuthContext = Depends(auth.get_auth_context),
    db: Session = Depends(database.get_db),
):
    return businesses.switch_role(db, ctx.user_id, payload.role)
