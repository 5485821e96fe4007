"""Auth-related response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class AccessTokenResponse(BaseModel):
    access_token: str


class MessageResponse(BaseModel):
    message: str


class LogoutAllResponse(MessageResponse):
    revoked: int


class IdentityOut(BaseModel):
    user_id: int
    email: str
