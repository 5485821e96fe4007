"""Application configuration loaded from environment variables."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from todo_api.core.exceptions import InvalidConfigurationError

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    APP_NAME: str = "Todo API"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/todo_api"

    JWT_SECRET: str = ""
    REFRESH_COOKIE_NAME: str = "refreshToken"
    COOKIE_SECURE: bool = False
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000"
    ALLOWED_HOSTS: str = "*"

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 120
    RATE_LIMIT_AUTH_MAX_REQUESTS: int = 20
    TRUSTED_PROXIES: str = ""

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def allowed_hosts(self) -> list[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()] or ["*"]

    @property
    def trusted_proxies(self) -> set[str]:
        return {proxy.strip() for proxy in self.TRUSTED_PROXIES.split(",") if proxy.strip()}

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() in {"prod", "production"}

    @property
    def refresh_token_lifetime(self) -> dt.timedelta:
        return dt.timedelta(days=self.REFRESH_TOKEN_EXPIRE_DAYS)

    def validate_runtime_security(self) -> None:
        if not self.JWT_SECRET.strip():
            raise InvalidConfigurationError("JWT_SECRET is not set", setting="JWT_SECRET")
        if self.REFRESH_TOKEN_EXPIRE_DAYS <= 0:
            raise InvalidConfigurationError(
                "REFRESH_TOKEN_EXPIRE_DAYS must be positive",
                setting="REFRESH_TOKEN_EXPIRE_DAYS",
            )


settings = Settings()
