"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    strict_likes: bool = Field(
        False,
        description="Reject likes on unknown question ids with 404 instead of creating a zero record",
    )
    list_limit: int = Field(
        20,
        description="Maximum number of questions returned by the list endpoint",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Backing store configuration (records, index, cache, sessions)."""

    backend: str = Field(
        "memory",
        description="Store backend: 'memory' (single process) or 'redis'",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL used when backend is 'redis'",
    )
    latest_cache_ttl_seconds: int = Field(
        30,
        description="TTL of the cached latest-questions view",
        ge=1,
    )
    session_ttl_seconds: int = Field(
        60 * 60 * 24 * 7,
        description="Lifetime of login sessions",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Sliding-window rate limits for write endpoints."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on write endpoints",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    grace_seconds: int = Field(
        5,
        description="Extra lifetime of an idle window beyond its size",
        ge=0,
    )
    create_limit: int = Field(5, description="Questions allowed per window", ge=1)
    create_window_seconds: int = Field(60, description="Window for question creation", ge=1)
    like_limit: int = Field(30, description="Likes allowed per window", ge=1)
    like_window_seconds: int = Field(60, description="Window for likes", ge=1)
    delete_limit: int = Field(10, description="Deletes allowed per window", ge=1)
    delete_window_seconds: int = Field(60, description="Window for deletes", ge=1)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class EventSettings(BaseSettings):
    """Event fan-out configuration."""

    backend: str = Field(
        "local",
        description="Event bus backend: 'local' (in-process) or 'redis' (pub/sub)",
    )
    channel: str = Field(
        "questions:events",
        description="Redis pub/sub channel used by the redis backend",
    )

    model_config = SettingsConfigDict(
        env_prefix="EVENTS_",
        case_sensitive=False,
    )


class StreamSettings(BaseSettings):
    """Per-connection event stream timing."""

    heartbeat_seconds: float = Field(
        5.0,
        description="Interval between ping frames",
        gt=0,
    )
    reconcile_seconds: float = Field(
        1.5,
        description="Interval between store reconciliation passes",
        gt=0,
    )
    reconcile_limit: int = Field(
        20,
        description="Number of latest questions tracked per connection",
        ge=1,
    )
    queue_size: int = Field(
        256,
        description="Maximum number of undelivered frames buffered per connection",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="STREAM_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log output: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output is 'file'")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and propagate request ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    events: EventSettings = Field(default_factory=EventSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
