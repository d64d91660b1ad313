"""Configuration management for the go-links redirect service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from golinks.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    root = settings.SITE_ROOT_URL

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables override defaults automatically.
- SITE_ROOT_URL is where every failed redirect lands, with an ``error`` marker.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "golinks"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # Fallback destination for unresolvable short links
    SITE_ROOT_URL: str = "/"
    REDIRECT_STATUS_CODE: int = 302

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://golinks:golinks@db:5432/golinks"

    # Redis (unique visitor window)
    REDIS_URL: str = "redis://redis:6379/0"
    UNIQUE_CLICK_KEY_PREFIX: str = "unique_click"
    UNIQUE_CLICK_WINDOW_SECONDS: int = 86400

    # Analytics
    RECENT_CLICKS_LIMIT: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
