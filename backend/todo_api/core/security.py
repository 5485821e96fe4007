"""Security helpers for hashing passwords and issuing JWTs."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Callable
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
ACCESS_TOKEN_LIFETIME = dt.timedelta(minutes=15)
DEFAULT_REFRESH_TOKEN_LIFETIME = dt.timedelta(days=7)
JWT_ALGORITHM = "HS256"
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")

Clock = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


class InvalidTokenError(ValueError):
    """A token failed verification. The reason is deliberately not exposed."""

    def __init__(self, reason: str = "invalid_token"):
        self.reason = reason
        super().__init__("invalid_token")


class TokenSigningError(RuntimeError):
    """A claim set could not be signed."""


def coerce_identity(value: Any) -> int:
    """Turn a ``sub`` claim into a user id.

    Accepts ints, integral floats and ASCII digit strings; anything else,
    including booleans and non-positive numbers, is rejected.
    """
    if isinstance(value, bool):
        raise InvalidTokenError("invalid_subject")
    if isinstance(value, int):
        user_id = value
    elif isinstance(value, float) and value.is_integer():
        user_id = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdecimal():
        user_id = int(value.strip())
    else:
        raise InvalidTokenError("invalid_subject")
    if user_id <= 0:
        raise InvalidTokenError("invalid_subject")
    return user_id


def _timestamp(value: Any, claim: str) -> dt.datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTokenError(f"invalid_{claim}")
    try:
        return dt.datetime.fromtimestamp(value, tz=dt.timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidTokenError(f"invalid_{claim}") from exc


@dataclass(frozen=True)
class TokenClaims:
    subject: int
    email: str | None
    token_type: str | None
    jti: str | None
    issued_at: dt.datetime
    expires_at: dt.datetime

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        jti = payload.get("jti")
        if jti is not None and (not isinstance(jti, str) or not jti.strip()):
            raise InvalidTokenError("invalid_jti")
        email = payload.get("email")
        token_type = payload.get("type")
        return cls(
            subject=coerce_identity(payload.get("sub")),
            email=email if isinstance(email, str) and email else None,
            token_type=token_type if isinstance(token_type, str) else None,
            jti=jti,
            issued_at=_timestamp(payload.get("iat"), "iat"),
            expires_at=_timestamp(payload.get("exp"), "exp"),
        )


class TokenCodec:
    """Signs and verifies access and refresh tokens with a shared HMAC secret."""

    def __init__(
        self,
        secret: str,
        *,
        refresh_lifetime: dt.timedelta = DEFAULT_REFRESH_TOKEN_LIFETIME,
        algorithm: str = JWT_ALGORITHM,
        clock: Clock = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret is required")
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"unsupported signing algorithm: {algorithm}")
        if refresh_lifetime <= dt.timedelta(0):
            raise ValueError("refresh lifetime must be positive")
        self._secret = secret
        self._algorithm = algorithm
        self._refresh_lifetime = refresh_lifetime
        self._clock = clock

    def refresh_lifetime(self) -> dt.timedelta:
        return self._refresh_lifetime

    def issue_access(self, user_id: int, email: str, *, now: dt.datetime | None = None) -> str:
        return self._sign(
            {"sub": str(user_id), "email": email},
            issued_at=now or self._clock(),
            lifetime=ACCESS_TOKEN_LIFETIME,
            token_type=ACCESS_TOKEN_TYPE,
        )

    def issue_refresh(self, user_id: int, email: str, *, now: dt.datetime | None = None) -> tuple[str, str]:
        jti = str(uuid4())
        token = self._sign(
            {"sub": str(user_id), "email": email, "jti": jti},
            issued_at=now or self._clock(),
            lifetime=self._refresh_lifetime,
            token_type=REFRESH_TOKEN_TYPE,
        )
        return token, jti

    def verify(self, token: str, *, expected_type: str | None = None) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise InvalidTokenError("empty_token")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=list(HMAC_ALGORITHMS),
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_sub": False,
                },
            )
        except JWTError as exc:
            raise InvalidTokenError("signature_or_format") from exc

        claims = TokenClaims.from_payload(payload)
        if claims.expires_at <= self._clock():
            raise InvalidTokenError("expired")
        if expected_type and claims.token_type != expected_type:
            raise InvalidTokenError("wrong_type")
        return claims

    def _sign(
        self,
        data: dict[str, Any],
        *,
        issued_at: dt.datetime,
        lifetime: dt.timedelta,
        token_type: str,
    ) -> str:
        to_encode = data.copy()
        expire = issued_at + lifetime
        to_encode.update(
            {"type": token_type, "iat": int(issued_at.timestamp()), "exp": int(expire.timestamp())}
        )
        try:
            return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)
        except JWTError as exc:
            raise TokenSigningError("failed to sign token") from exc
