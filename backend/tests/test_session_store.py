from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy.exc import OperationalError

from todo_api.core.security import hash_password, utcnow
from todo_api.models.refresh_session import RefreshSession
from todo_api.models.user import User
from todo_api.services.session_store import (
    InMemorySessionStore,
    RefreshSessionRecord,
    SqlSessionStore,
    StorageError,
)


def _record(jti: str, *, user_id: int = 1, expires_in: dt.timedelta = dt.timedelta(days=7)) -> RefreshSessionRecord:
    now = utcnow().replace(microsecond=0)
    return RefreshSessionRecord(
        jti=jti,
        user_id=user_id,
        user_agent="pytest",
        ip_address="127.0.0.1",
        created_at=now,
        expires_at=now + expires_in,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, db_session):  # noqa: ANN001
    if request.param == "memory":
        return InMemorySessionStore()
    for user_id in (1, 2):
        db_session.add(User(id=user_id, name=f"User {user_id}", email=f"u{user_id}@x.com", password_hash=hash_password("x")))
    db_session.commit()
    return SqlSessionStore(db_session)


def test_create_then_get_returns_record(store) -> None:  # noqa: ANN001
    record = _record("jti-1")
    store.create(record)

    loaded = store.get("jti-1")

    assert loaded == record
    assert loaded.expires_at.tzinfo is not None
    assert store.get("missing") is None


def test_duplicate_jti_is_a_storage_error(store) -> None:  # noqa: ANN001
    store.create(_record("jti-1"))

    with pytest.raises(StorageError):
        store.create(_record("jti-1"))
    assert store.get("jti-1") is not None


def test_delete_is_conditional_and_idempotent(store) -> None:  # noqa: ANN001
    store.create(_record("jti-1"))

    assert store.delete("jti-1") is True
    assert store.delete("jti-1") is False
    assert store.delete("never-existed") is False
    assert store.get("jti-1") is None


def test_delete_by_owner_only_touches_that_owner(store) -> None:  # noqa: ANN001
    store.create(_record("a-1", user_id=1))
    store.create(_record("a-2", user_id=1))
    store.create(_record("b-1", user_id=2))

    assert store.delete_by_owner(1) == 2
    assert store.delete_by_owner(1) == 0
    assert store.get("a-1") is None
    assert store.get("b-1") is not None


def test_delete_expired_removes_only_past_records(store) -> None:  # noqa: ANN001
    store.create(_record("old", expires_in=dt.timedelta(seconds=-5)))
    store.create(_record("fresh"))

    assert store.delete_expired(utcnow()) == 1
    assert store.get("old") is None
    assert store.get("fresh") is not None


def test_record_expiry_boundary_is_inclusive() -> None:
    record = _record("jti-1", expires_in=dt.timedelta(minutes=1))

    assert not record.is_expired(record.expires_at - dt.timedelta(seconds=1))
    assert record.is_expired(record.expires_at)


def test_in_memory_store_lists_records_per_owner() -> None:
    store = InMemorySessionStore()
    store.create(_record("a-1", user_id=1))
    store.create(_record("b-1", user_id=2))

    assert [record.jti for record in store.records_for(1)] == ["a-1"]
    assert len(store) == 2


def test_sql_store_wraps_database_failures(db_session, monkeypatch) -> None:  # noqa: ANN001
    store = SqlSessionStore(db_session)

    def broken_execute(*_args, **_kwargs):  # noqa: ANN002, ANN003
        raise OperationalError("DELETE", {}, Exception("database is gone"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    with pytest.raises(StorageError):
        store.delete("jti-1")


def test_sql_store_returns_utc_aware_datetimes(db_session) -> None:  # noqa: ANN001
    db_session.add(User(id=1, name="User", email="u@x.com", password_hash=hash_password("x")))
    db_session.commit()
    store = SqlSessionStore(db_session)
    store.create(_record("jti-1"))
    db_session.expire_all()

    row = db_session.get(RefreshSession, "jti-1")
    loaded = store.get("jti-1")

    assert row is not None
    assert loaded.created_at.tzinfo == dt.timezone.utc
    assert loaded.expires_at - loaded.created_at == dt.timedelta(days=7)
