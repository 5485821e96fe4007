"""Request boundary: token extraction, identity injection and service wiring."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from todo_api.core.config import settings
from todo_api.core.exceptions import UnauthorizedError
from todo_api.core.security import ACCESS_TOKEN_TYPE, InvalidTokenError, TokenCodec
from todo_api.db.session import get_db
from todo_api.services.session_store import SqlSessionStore
from todo_api.services.sessions import Identity, SessionManager


def extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    if not cleaned or " " in cleaned:
        return None
    return cleaned


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_session_manager(
    request: Request,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> SessionManager:
    return SessionManager(codec, SqlSessionStore(db))


def get_current_identity(request: Request, codec: TokenCodec = Depends(get_token_codec)) -> Identity:
    token = extract_bearer_token(request)
    if not token:
        raise UnauthorizedError()
    try:
        claims = codec.verify(token, expected_type=ACCESS_TOKEN_TYPE)
    except InvalidTokenError:
        raise UnauthorizedError()
    return Identity(user_id=claims.subject, email=claims.email or "")


def get_optional_identity(request: Request, codec: TokenCodec = Depends(get_token_codec)) -> Identity | None:
    try:
        return get_current_identity(request, codec)
    except UnauthorizedError:
        return None


async def get_refresh_token(request: Request) -> str | None:
    cookie_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    try:
        body = await request.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        value = body.get("refresh_token")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def request_origin(request: Request) -> tuple[str, str]:
    user_agent = request.headers.get("user-agent", "")[:512]
    ip_address = request.client.host if request.client else ""
    return user_agent, ip_address[:64]
