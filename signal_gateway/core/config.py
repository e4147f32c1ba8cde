"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Settings are grouped per concern, each with its own env prefix:
BACKEND_*, QUEUE_*, APP_* and LOG_*.
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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


class BackendSettings(BaseSettings):
    """Messaging backend (signal-cli REST API) connection settings."""

    base_url: str = Field(
        "http://localhost:8080",
        description="Base URL of the messaging backend REST API",
    )
    sender_id: str | None = Field(
        None,
        description="Registered account (phone number) used as the sender",
    )
    timeout_seconds: float = Field(
        60.0,
        description="Per-request timeout; large attachments need a generous value",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="BACKEND_",
        case_sensitive=False,
    )


class QueueSettings(BaseSettings):
    """Send queue throttling settings."""

    min_interval_ms: int = Field(
        1000,
        description="Minimum delay between the start of two consecutive sends",
        ge=0,
    )
    concurrency_limit: int = Field(
        1,
        description="Maximum number of sends running at the same time",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="QUEUE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    host: str = Field(
        "0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        3000,
        description="Port the HTTP server listens on",
        ge=1,
        le=65535,
    )
    max_upload_size_mb: int = Field(
        100,
        description="Maximum media upload size in megabytes",
        ge=1,
    )
    upload_dir: str = Field(
        "/tmp/uploads",
        description="Directory where uploaded media is stored until sent",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("info", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field(
        "both",
        description="'stdout', 'file' or 'both'",
    )
    dir: str = Field("./logs", description="Directory for log files")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate log files at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    A missing sender account is not a startup failure; it is reported as a
    warning when the app starts and as a 500 on routes that need it.
    """

    app_env: str = APP_ENV
    backend: BackendSettings = Field(default_factory=BackendSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
