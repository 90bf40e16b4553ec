"""Configuration management for the URL shortener.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    ttl = settings.CACHE_TTL_SECONDS

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables override defaults automatically.
- ``EXPIRY_GRACE_SECONDS`` falls back to the validity window when unset.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

import datetime
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

TWO_WEEKS_SECONDS = 14 * 24 * 60 * 60


class Settings(BaseSettings):
    APP_NAME: str = "url-shortener"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://urlshortener:urlshortener@db:5432/urlshortener"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Short URL config
    SHORT_TOKEN_LENGTH: int = 8
    VALIDITY_WINDOW_SECONDS: int = TWO_WEEKS_SECONDS

    # Cache (applies to positive and negative entries alike)
    CACHE_TTL_SECONDS: int = 3600
    CACHE_KEY_PREFIX: str = "url:"

    # Per-operation deadlines
    STORE_TIMEOUT_SECONDS: float = 2.0
    CACHE_TIMEOUT_SECONDS: float = 0.5

    # Best-effort click increments on the cache-hit path
    CLICK_MAX_PENDING: int = 1000

    # Expiry sweeper
    EXPIRY_GRACE_SECONDS: int | None = None
    SWEEPER_ENABLED: bool = True
    SWEEPER_INTERVAL_SECONDS: int = 3600
    SWEEPER_TIMEOUT_SECONDS: int = 300

    # Info endpoint
    ADMIN_API_KEY: str = "admin"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @property
    def validity_window(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.VALIDITY_WINDOW_SECONDS)

    @property
    def expiry_grace(self) -> datetime.timedelta:
        if self.EXPIRY_GRACE_SECONDS is None:
            return self.validity_window
        return datetime.timedelta(seconds=self.EXPIRY_GRACE_SECONDS)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
