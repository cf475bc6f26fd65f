# sportbook/sessions.py
"""
Session storage behind a small interface so the identity gate does not care
whether sessions live in process memory or in the database.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from sportbook import models

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionData:
    user_id: int
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class SessionStore:
    def get(self, sid: str) -> Optional[SessionData]:
        raise NotImplementedError

    def set(self, sid: str, data: SessionData) -> None:
        raise NotImplementedError

    def delete(self, sid: str) -> None:
        raise NotImplementedError

    def expire(self, now: datetime) -> int:
        """Drop every session that has expired by `now`; returns how many were removed."""
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def get(self, sid):
        with self._lock:
            return self._sessions.get(sid)

    def set(self, sid, data):
        with self._lock:
            self._sessions[sid] = data

    def delete(self, sid):
        with self._lock:
            self._sessions.pop(sid, None)

    def expire(self, now):
        with self._lock:
            stale = [sid for sid, data in self._sessions.items() if data.is_expired(now)]
            for sid in stale:
                del self._sessions[sid]
        return len(stale)

    def __len__(self):
        return len(self._sessions)


class DatabaseSessionStore(SessionStore):
    """Sessions persisted in the `sessions` table, one short DB session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get(self, sid):
        with self._session_factory() as db:
            record = db.get(models.SessionRecord, sid)
            if record is None:
                return None
            return SessionData(user_id=record.user_id, expires_at=record.expires_at)

    def set(self, sid, data):
        with self._session_factory() as db:
            record = db.get(models.SessionRecord, sid)
            if record is None:
                db.add(models.SessionRecord(sid=sid, user_id=data.user_id, expires_at=data.expires_at))
            else:
                record.user_id = data.user_id
                record.expires_at = data.expires_at
            db.commit()

    def delete(self, sid):
        with self._session_factory() as db:
            db.query(models.SessionRecord).filter(models.SessionRecord.sid == sid).delete()
            db.commit()

    def expire(self, now):
        with self._session_factory() as db:
            removed = (
                db.query(models.SessionRecord)
                .filter(models.SessionRecord.expires_at <= now)
                .delete(synchronize_session=False)
            )
            db.commit()
        if removed:
            logger.info(f"Expired {removed} stale session(s)")
        return removed
