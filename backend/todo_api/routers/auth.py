"""Authentication endpoints (register, login, refresh, logout, logout-all)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from todo_api.core.config import settings
from todo_api.core.deps import (
    get_current_identity,
    get_optional_identity,
    get_refresh_token,
    get_session_manager,
    request_origin,
)
from todo_api.core.exceptions import InvalidCredentialsError
from todo_api.core.rate_limit import rate_limit
from todo_api.db.session import get_db
from todo_api.schemas.auth import AccessTokenResponse, IdentityOut, LogoutAllResponse, MessageResponse
from todo_api.schemas.user import UserCreate, UserLogin, UserOut
from todo_api.services.sessions import Identity, IssuedTokens, SessionManager
from todo_api.services.users import authenticate_user, create_user

router = APIRouter()

# /logout is left unthrottled so it always answers 200.
_auth_limit = [Depends(rate_limit("auth"))]


def _set_refresh_cookie(response: Response, tokens: IssuedTokens) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        tokens.refresh_token,
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
        path="/",
        expires=tokens.refresh_expires_at,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.REFRESH_COOKIE_NAME,
        path="/",
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, dependencies=_auth_limit)
def register_user(payload: UserCreate, db: Session = Depends(get_db)) -> UserOut:
    user = create_user(db, payload)
    return UserOut.model_validate(user)


@router.post("/login", response_model=AccessTokenResponse, dependencies=_auth_limit)
def login_user(
    payload: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
) -> AccessTokenResponse:
    user = authenticate_user(db, payload.email, payload.password)
    if not user:
        raise InvalidCredentialsError()

    user_agent, ip_address = request_origin(request)
    tokens = manager.login(
        Identity(user_id=user.id, email=user.email),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    _set_refresh_cookie(response, tokens)
    return AccessTokenResponse(access_token=tokens.access_token)


@router.post("/refresh", response_model=AccessTokenResponse, dependencies=_auth_limit)
def refresh_session(
    request: Request,
    response: Response,
    refresh_token: str | None = Depends(get_refresh_token),
    manager: SessionManager = Depends(get_session_manager),
) -> AccessTokenResponse:
    user_agent, ip_address = request_origin(request)
    tokens = manager.refresh(refresh_token, user_agent=user_agent, ip_address=ip_address)
    _set_refresh_cookie(response, tokens)
    return AccessTokenResponse(access_token=tokens.access_token)


@router.post("/logout", response_model=MessageResponse)
def logout_user(
    response: Response,
    refresh_token: str | None = Depends(get_refresh_token),
    manager: SessionManager = Depends(get_session_manager),
) -> MessageResponse:
    manager.logout(refresh_token)
    _clear_refresh_cookie(response)
    return MessageResponse(message="logged_out")


@router.post("/logout-all", response_model=LogoutAllResponse, dependencies=_auth_limit)
def logout_all_devices(
    response: Response,
    identity: Identity | None = Depends(get_optional_identity),
    manager: SessionManager = Depends(get_session_manager),
) -> LogoutAllResponse:
    revoked = manager.logout_all(identity)
    _clear_refresh_cookie(response)
    return LogoutAllResponse(message="logged_out_all", revoked=revoked)


@router.get("/me", response_model=IdentityOut, dependencies=_auth_limit)
def me(identity: Identity = Depends(get_current_identity)) -> IdentityOut:
    return IdentityOut(user_id=identity.user_id, email=identity.email)
