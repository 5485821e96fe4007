
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from todo_api.core.config import settings
from todo_api.core.exceptions import InternalServerError, RequestValidationFailed, TodoAPIException
from todo_api.core.logging import setup_logging
from todo_api.core.rate_limit import SlidingWindowLimiter
from todo_api.core.security import TokenCodec
from todo_api.core.security_headers import install_security_headers_middleware
from todo_api.routers import auth, todos

logger = logging.getLogger(__name__)


def build_token_codec() -> TokenCodec:
    return TokenCodec(settings.JWT_SECRET, refresh_lifetime=settings.refresh_token_lifetime)


def create_app(
    *,
    token_codec: TokenCodec | None = None,
    rate_limiter: SlidingWindowLimiter | None = None,
) -> FastAPI:
    setup_logging(settings.LOG_LEVEL)
    if token_codec is None:
        settings.validate_runtime_security()
        token_codec = build_token_codec()

    app = FastAPI(title=settings.APP_NAME)
    app.state.token_codec = token_codec
    app.state.rate_limiter = rate_limiter or SlidingWindowLimiter()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )
    install_security_headers_middleware(app, settings)

    app.include_router(auth.router, tags=["auth"])
    app.include_router(todos.router, prefix="/todos", tags=["todos"])

    @app.exception_handler(TodoAPIException)
    async def handle_api_exception(_: Request, exc: TodoAPIException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        error = RequestValidationFailed(details={"errors": jsonable_encoder(exc.errors())})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        error = InternalServerError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    return app


app = create_app()
