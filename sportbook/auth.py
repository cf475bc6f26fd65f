# sportbook/auth.py
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from sportbook import database, models
from sportbook.config import settings
from sportbook.exceptions import Forbidden, Unauthenticated
from sportbook.sessions import DatabaseSessionStore, InMemorySessionStore, SessionData, SessionStore

logger = logging.getLogger(__name__)

# Load Security Configurations
SECRET_KEY = settings.JWT_SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM
SESSION_EXPIRE_MINUTES = settings.SESSION_EXPIRE_MINUTES

# Password Hashing Configuration (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token is optional here: the session cookie is accepted as well
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="users/login", auto_error=False)


def utcnow() -> datetime:
    return datetime.utcnow()


# Password Hashing Functions
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# Session store selection
def build_session_store(backend: str = settings.SESSION_BACKEND) -> SessionStore:
    if backend == "memory":
        return InMemorySessionStore()
    if backend == "database":
        return DatabaseSessionStore(database.SessionLocal)
    raise ValueError(f"Unknown session backend: {backend!r}")


_session_store: Optional[SessionStore] = None

def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = build_session_store()
    return _session_store


# Token handling
def create_access_token(data: dict, expires_at: datetime) -> str:
    """
    Signs the session id and user id into the bearer token handed to the client.
    """
    to_encode = data.copy()
    to_encode.update({"exp": expires_at})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def open_session(store: SessionStore, user_id: int, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    sid = secrets.token_urlsafe(32)
    expires_at = now + timedelta(minutes=SESSION_EXPIRE_MINUTES)
    store.set(sid, SessionData(user_id=user_id, expires_at=expires_at))
    return create_access_token({"sub": str(user_id), "sid": sid}, expires_at)


def _session_id_from_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_exp": False})
    except JWTError:
        return None
    return payload.get("sid")


def close_session(store: SessionStore, token: Optional[str]) -> Optional[str]:
    """Drops the session behind `token` and returns its id, if there was one."""
    if not token:
        return None
    sid = _session_id_from_token(token)
    if sid:
        store.delete(sid)
    return sid


def resolve_token(store: SessionStore, token: Optional[str], now: Optional[datetime] = None):
    """
    Returns (session_id, user_id) for a live session, or None.

    Unknown or expired sessions are evicted from the store on the way out.
    """
    if not token:
        return None
    now = now or utcnow()

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        close_session(store, token)
        return None
    except JWTError:
        return None

    sid = payload.get("sid")
    if not sid:
        return None

    session = store.get(sid)
    if session is None or session.is_expired(now):
        store.delete(sid)
        return None
    if str(session.user_id) != payload.get("sub"):
        return None
    return sid, session.user_id


@dataclass(frozen=True)
class AuthContext:
    user_id: int
    role: models.Role
    session_id: str

    @property
    def is_business(self) -> bool:
        return self.role == models.Role.BUSINESS

    @property
    def is_customer(self) -> bool:
        return self.role == models.Role.CUSTOMER


def request_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    return bearer or request.cookies.get(settings.SESSION_COOKIE_NAME)


# Identity gate: one resolution per request, passed explicitly to the services
def get_auth_context(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(database.get_db),
    store: SessionStore = Depends(get_session_store),
) -> AuthContext:
    resolved = resolve_token(store, request_token(request, bearer))
    if resolved is None:
        raise Unauthenticated()

    sid, user_id = resolved
    user = db.get(models.User, user_id)
    if user is None:
        store.delete(sid)
        raise Unauthenticated()

    return AuthContext(user_id=user.id, role=user.role, session_id=sid)


def require_role(ctx: AuthContext, role: models.Role) -> AuthContext:
    if ctx.role != role:
        raise Forbidden(f"{role.value.capitalize()} role required")
    return ctx


def require_customer(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    return require_role(ctx, models.Role.CUSTOMER)


def require_business(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    return require_role(ctx, models.Role.BUSINESS)
