"""Durable storage for refresh sessions, keyed by refresh-token jti."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from todo_api.models.refresh_session import RefreshSession

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the session store cannot complete a write or read."""


@dataclass(frozen=True)
class RefreshSessionRecord:
    jti: str
    user_id: int
    user_agent: str
    ip_address: str
    created_at: dt.datetime
    expires_at: dt.datetime

    def is_expired(self, now: dt.datetime) -> bool:
        return self.expires_at <= now


class SessionStore(Protocol):
    """Storage contract used by the session manager.

    Records are immutable: there is no update, rotation always creates a new
    record and deletes the old one.
    """

    def create(self, record: RefreshSessionRecord) -> None:
        """Insert a record. Raises StorageError on duplicate jti or failure."""
        ...

    def get(self, jti: str) -> RefreshSessionRecord | None:
        ...

    def delete(self, jti: str) -> bool:
        """Remove a record; returns False when nothing was there."""
        ...

    def delete_by_owner(self, user_id: int) -> int:
        ...

    def delete_expired(self, now: dt.datetime) -> int:
        ...


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def _to_record(row: RefreshSession) -> RefreshSessionRecord:
    return RefreshSessionRecord(
        jti=row.jti,
        user_id=row.user_id,
        user_agent=row.user_agent or "",
        ip_address=row.ip_address or "",
        created_at=_as_utc(row.created_at),
        expires_at=_as_utc(row.expires_at),
    )


class SqlSessionStore:
    """Session store over a SQLAlchemy session. Every call commits on its own."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, record: RefreshSessionRecord) -> None:
        self._db.add(
            RefreshSession(
                jti=record.jti,
                user_id=record.user_id,
                user_agent=record.user_agent,
                ip_address=record.ip_address,
                created_at=record.created_at,
                expires_at=record.expires_at,
            )
        )
        self._commit("create")

    def get(self, jti: str) -> RefreshSessionRecord | None:
        try:
            row = self._db.get(RefreshSession, jti)
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Refresh session lookup failed")
            raise StorageError("session lookup failed") from exc
        return _to_record(row) if row else None

    def delete(self, jti: str) -> bool:
        return self._delete_where(RefreshSession.jti == jti, operation="delete") > 0

    def delete_by_owner(self, user_id: int) -> int:
        return self._delete_where(RefreshSession.user_id == user_id, operation="delete_by_owner")

    def delete_expired(self, now: dt.datetime) -> int:
        return self._delete_where(RefreshSession.expires_at <= now, operation="delete_expired")

    def _delete_where(self, condition, *, operation: str) -> int:  # noqa: ANN001
        try:
            result = self._db.execute(
                delete(RefreshSession).where(condition).execution_options(synchronize_session=False)
            )
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Refresh session %s failed", operation)
            raise StorageError(f"session {operation} failed") from exc
        return int(result.rowcount or 0)

    def _commit(self, operation: str) -> None:
        try:
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Refresh session %s failed", operation)
            raise StorageError(f"session {operation} failed") from exc


class InMemorySessionStore:
    """Process-local store for tests and tooling; safe to share between threads."""

    def __init__(self) -> None:
        self._records: dict[str, RefreshSessionRecord] = {}
        self._lock = Lock()

    def create(self, record: RefreshSessionRecord) -> None:
        with self._lock:
            if record.jti in self._records:
                raise StorageError("duplicate session jti")
            self._records[record.jti] = record

    def get(self, jti: str) -> RefreshSessionRecord | None:
        with self._lock:
            return self._records.get(jti)

    def delete(self, jti: str) -> bool:
        with self._lock:
            return self._records.pop(jti, None) is not None

    def delete_by_owner(self, user_id: int) -> int:
        with self._lock:
            doomed = [jti for jti, record in self._records.items() if record.user_id == user_id]
            for jti in doomed:
                del self._records[jti]
            return len(doomed)

    def delete_expired(self, now: dt.datetime) -> int:
        with self._lock:
            doomed = [jti for jti, record in self._records.items() if record.is_expired(now)]
            for jti in doomed:
                del self._records[jti]
            return len(doomed)

    def records_for(self, user_id: int) -> list[RefreshSessionRecord]:
        with self._lock:
            return [record for record in self._records.values() if record.user_id == user_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
