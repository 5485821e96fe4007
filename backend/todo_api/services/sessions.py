"""Refresh-session lifecycle: login, rotation on refresh, logout and logout-all.

Every refresh token is single use. Its session row is deleted before the
replacement pair is issued, and the store's conditional delete decides which
of two concurrent refreshes presenting the same token wins. All rejection
reasons collapse into the same ``UnauthorizedError`` for the caller; the
concrete reason only reaches the server log.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import NoReturn

from todo_api.core.exceptions import InternalServerError, UnauthorizedError
from todo_api.core.security import (
    REFRESH_TOKEN_TYPE,
    Clock,
    InvalidTokenError,
    TokenCodec,
    TokenSigningError,
    utcnow,
)
from todo_api.services.session_store import RefreshSessionRecord, SessionStore, StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    session: RefreshSessionRecord

    @property
    def refresh_expires_at(self) -> dt.datetime:
        return self.session.expires_at


class SessionManager:
    def __init__(self, codec: TokenCodec, store: SessionStore, *, clock: Clock = utcnow) -> None:
        self._codec = codec
        self._store = store
        self._clock = clock

    def login(self, identity: Identity, *, user_agent: str = "", ip_address: str = "") -> IssuedTokens:
        tokens = self._issue(identity, user_agent=user_agent, ip_address=ip_address)
        logger.info("Refresh session opened for user %s", identity.user_id)
        return tokens

    def refresh(self, token: str | None, *, user_agent: str = "", ip_address: str = "") -> IssuedTokens:
        if not token:
            self._reject("missing_token")

        try:
            claims = self._codec.verify(token, expected_type=REFRESH_TOKEN_TYPE)
        except InvalidTokenError as exc:
            self._reject(exc.reason)
        if not claims.jti:
            self._reject("missing_jti")

        record = self._call_store(self._store.get, claims.jti)
        if record is None:
            self._reject("session_not_found")
        if record.user_id != claims.subject:
            self._reject("subject_mismatch")

        if record.is_expired(self._clock()):
            try:
                self._store.delete(record.jti)
            except StorageError:
                logger.warning("Could not remove expired refresh session for user %s", record.user_id)
            self._reject("session_expired")

        if not self._call_store(self._store.delete, record.jti):
            self._reject("session_already_consumed")

        identity = Identity(user_id=claims.subject, email=claims.email or "")
        tokens = self._issue(identity, user_agent=user_agent, ip_address=ip_address)
        logger.info("Refresh session rotated for user %s", identity.user_id)
        return tokens

    def logout(self, token: str | None) -> None:
        if not token:
            return
        try:
            claims = self._codec.verify(token, expected_type=REFRESH_TOKEN_TYPE)
        except InvalidTokenError as exc:
            logger.info("Logout with unusable refresh token (%s)", exc.reason)
            return
        if not claims.jti:
            return
        try:
            removed = self._store.delete(claims.jti)
        except StorageError:
            logger.warning("Logout could not remove refresh session for user %s", claims.subject)
            return
        if removed:
            logger.info("Refresh session closed for user %s", claims.subject)

    def logout_all(self, identity: Identity | None) -> int:
        if identity is None:
            raise UnauthorizedError()
        removed = self._call_store(self._store.delete_by_owner, identity.user_id)
        logger.info("Closed %s refresh sessions for user %s", removed, identity.user_id)
        return removed

    def _issue(self, identity: Identity, *, user_agent: str, ip_address: str) -> IssuedTokens:
        now = self._clock()
        try:
            access_token = self._codec.issue_access(identity.user_id, identity.email, now=now)
            refresh_token, jti = self._codec.issue_refresh(identity.user_id, identity.email, now=now)
        except TokenSigningError as exc:
            logger.exception("Token signing failed for user %s", identity.user_id)
            raise InternalServerError() from exc

        record = RefreshSessionRecord(
            jti=jti,
            user_id=identity.user_id,
            user_agent=user_agent or "",
            ip_address=ip_address or "",
            created_at=now,
            expires_at=now + self._codec.refresh_lifetime(),
        )
        self._call_store(self._store.create, record)
        return IssuedTokens(access_token=access_token, refresh_token=refresh_token, session=record)

    @staticmethod
    def _call_store(operation, *args):  # noqa: ANN001, ANN205
        try:
            return operation(*args)
        except StorageError as exc:
            raise InternalServerError() from exc

    @staticmethod
    def _reject(reason: str) -> NoReturn:
        logger.warning("Refresh rejected: %s", reason)
        raise UnauthorizedError()
