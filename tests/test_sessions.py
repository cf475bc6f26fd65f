from datetime import datetime, timedelta

import pytest
from jose import jwt

from sportbook import auth, models
from sportbook.exceptions import Forbidden
from sportbook.sessions import DatabaseSessionStore, InMemorySessionStore, SessionData
from tests.conftest import make_user

T0 = datetime(2025, 4, 20, 9, 0)


@pytest.fixture(params=["memory", "database"])
def store(request, session_factory):
    if request.param == "memory":
        return InMemorySessionStore()
    return DatabaseSessionStore(session_factory)


@pytest.fixture
def user(db):
    return make_user(db, "sessionuser")


def test_set_get_delete(store, user):
    data = SessionData(user_id=user.id, expires_at=T0 + timedelta(hours=1))
    store.set("abc", data)

    assert store.get("abc") == data
    store.delete("abc")
    assert store.get("abc") is None
    # deleting twice is harmless
    store.delete("abc")


def test_expire_sweeps_only_stale_sessions(store, user):
    store.set("old", SessionData(user_id=user.id, expires_at=T0 - timedelta(minutes=1)))
    store.set("fresh", SessionData(user_id=user.id, expires_at=T0 + timedelta(days=1)))

    assert store.expire(T0) == 1
    assert store.get("old") is None
    assert store.get("fresh") is not None


def test_open_and_resolve_session(store, user):
    token = auth.open_session(store, user.id)

    sid, user_id = auth.resolve_token(store, token)
    assert user_id == user.id
    assert store.get(sid).user_id == user.id


def test_expired_session_is_evicted_on_lookup(store, user):
    token = auth.open_session(store, user.id)
    sid, _ = auth.resolve_token(store, token)

    much_later = auth.utcnow() + timedelta(minutes=auth.SESSION_EXPIRE_MINUTES + 1)
    assert auth.resolve_token(store, token, now=much_later) is None
    assert store.get(sid) is None


def test_unknown_and_forged_tokens(store, user):
    assert auth.resolve_token(store, None) is None
    assert auth.resolve_token(store, "not-a-token") is None

    token = auth.open_session(store, user.id)
    auth.close_session(store, token)
    assert auth.resolve_token(store, token) is None


def test_token_signed_with_another_key_is_rejected(store, user):
    forged = jwt.encode(
        {"sub": str(user.id), "sid": "whatever", "exp": auth.utcnow() + timedelta(hours=1)},
        "some-other-secret",
        algorithm=auth.ALGORITHM,
    )
    assert auth.resolve_token(store, forged) is None


def test_password_hashing():
    hashed = auth.get_password_hash("password123")
    assert hashed != "password123"
    assert auth.verify_password("password123", hashed)
    assert not auth.verify_password("wrong", hashed)


def test_build_session_store():
    assert isinstance(auth.build_session_store("memory"), InMemorySessionStore)
    assert isinstance(auth.build_session_store("database"), DatabaseSessionStore)
    with pytest.raises(ValueError):
        auth.build_session_store("redis")


def test_role_check(user):
    ctx = auth.AuthContext(user_id=user.id, role=models.Role.CUSTOMER, session_id="s")
    assert auth.require_role(ctx, models.Role.CUSTOMER) is ctx

    with pytest.raises(Forbidden):
        auth.require_role(ctx, models.Role.BUSINESS)
