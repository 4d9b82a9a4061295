from __future__ import annotations

import os
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "PPh21 Payroll"
    ENV: str = "dev"
    DATABASE_URL: str | None = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Auth
    JWT_SECRET: str = "change_me"
    ACCESS_TOKEN_MINUTES: int = 60 * 12
    PASSWORD_MIN_LENGTH: int = 8

    # HTTP surface
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["GET", "POST", "PATCH", "OPTIONS"]
    CORS_ALLOW_HEADERS: list[str] = ["Authorization", "Content-Type", "X-Tenant-ID"]
    CORS_ALLOW_CREDENTIALS: bool = True
    # /docs loads swagger-ui from jsdelivr
    CONTENT_SECURITY_POLICY: str = (
        "default-src 'none'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data:; "
        "connect-src 'self'; "
        "frame-ancestors 'none'"
    )
    HSTS_SECONDS: int = 31_536_000
    MAX_REQUEST_BYTES: int = 2 * 1024 * 1024

    # Observability
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"
    ENGINE_LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1
    AUDIT_LOG_FILE: str = "storage/audit.log"

    # Rate limiting (slowapi / limits storage URI)
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_LOGIN: str = "10/minute"
    RATE_LIMIT_CALCULATOR: str = "120/minute"

    # Listing and batch sizes
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    CALCULATOR_BATCH_MAX_ITEMS: int = 500

    @model_validator(mode="after")
    def _check_deployment(self) -> BaseAppSettings:
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = "postgresql://" + self.DATABASE_URL[len("postgres://"):]

        if self.ENV.lower() in ("prod", "production"):
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production")
            if self.JWT_SECRET == "change_me" or len(self.JWT_SECRET) < 32:
                raise ValueError("JWT_SECRET must be a random value of at least 32 characters in production")
            if self.RATE_LIMIT_STORAGE_URI.startswith("memory://"):
                raise ValueError("RATE_LIMIT_STORAGE_URI must point at shared storage in production")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite:///./storage/dev.db"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"
    AUDIT_LOG_FILE: str = "storage/test_audit.log"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    CORS_ALLOW_ORIGINS: list[str] = []
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = (os.getenv("APP_ENV") or os.getenv("ENV") or "dev").lower()
    return _ENV_TO_SETTINGS.get(env_name, DevSettings)()


settings = get_settings()
