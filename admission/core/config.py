"""Admission control configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


LimiterStrategy = Literal["fixed_window", "token_bucket", "keyed_token_bucket"]


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment."""

    return LimiterSettings()


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment."""

    return LogSettings()


class LimiterSettings(BaseSettings):
    """Rate limiter selection and tuning."""

    enabled: bool = Field(
        True,
        description="Enable admission control for incoming requests",
    )
    strategy: LimiterStrategy = Field(
        "fixed_window",
        description="Limiter algorithm: fixed_window, token_bucket or keyed_token_bucket",
    )

    # Fixed window
    limit: int = Field(
        10,
        description="Maximum number of requests admitted per window (per identity)",
        ge=0,
    )
    window_seconds: float = Field(
        60.0,
        description="Fixed window length in seconds",
        gt=0,
    )
    atomic: bool = Field(
        False,
        description="Use a single atomic increment-and-compare instead of get-then-incr",
    )
    store_shards: int = Field(
        16,
        description="Number of lock stripes in the in-memory counter store",
        ge=1,
    )

    # Token bucket
    capacity: int = Field(
        10,
        description="Maximum tokens held by a bucket (also the refill ceiling)",
        ge=0,
    )
    refill_period_seconds: float = Field(
        60.0,
        description="Seconds over which an empty bucket refills to capacity",
        gt=0,
    )
    fractional_tokens: bool = Field(
        True,
        description="Carry fractional tokens across calls instead of truncating each refill",
    )

    include_headers: bool = Field(
        True,
        description="Include Retry-After and X-RateLimit-* headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log records are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/admission.log)",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
