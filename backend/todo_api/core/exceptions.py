"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class TodoAPIException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(TodoAPIException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class ConflictError(TodoAPIException):
    """Raised when a request conflicts with current state."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class BadRequestError(TodoAPIException):
    """Raised when request is invalid."""

    def __init__(self, message: str = "bad_request", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BAD_REQUEST", details=details, status_code=400)


class RequestValidationFailed(BadRequestError):
    """Raised when the request body or query does not match the expected shape."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__("validation_error", details=details)
        self.error_code = "VALIDATION_ERROR"


class RateLimitExceeded(TodoAPIException):
    """Raised when a client exceeds rate limits."""

    def __init__(self, *, retry_after: int, limit: int, window_seconds: int):
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Window": str(window_seconds),
        }
        super().__init__(
            "rate_limit_exceeded",
            error_code="RATE_LIMIT",
            details={"retry_after": retry_after, "limit": limit, "window_seconds": window_seconds},
            status_code=429,
            headers=headers,
        )


class InternalServerError(TodoAPIException):
    """Raised when the server cannot complete an operation; details stay in the logs."""

    def __init__(self, message: str = "internal_error"):
        super().__init__(message, error_code="INTERNAL_ERROR", status_code=500)


class InvalidConfigurationError(TodoAPIException):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, error_code="INVALID_CONFIG", details=details, status_code=500)


# ===== AUTHENTICATION/AUTHORIZATION EXCEPTIONS =====


class AuthenticationException(TodoAPIException):
    """Base exception for authentication errors."""


class UnauthorizedError(AuthenticationException):
    """Raised for any missing, invalid, expired, reused or revoked credential."""

    def __init__(self, message: str = "unauthorized"):
        super().__init__(
            message,
            error_code="UNAUTHORIZED",
            status_code=401,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsError(AuthenticationException):
    """Raised when an email/password pair does not match an account."""

    def __init__(self, message: str = "invalid_credentials"):
        super().__init__(message, error_code="INVALID_CREDENTIALS", status_code=401)


class ForbiddenError(AuthenticationException):
    """Raised when the caller does not own the requested resource."""

    def __init__(self, message: str = "forbidden"):
        super().__init__(message, error_code="FORBIDDEN", status_code=403)
