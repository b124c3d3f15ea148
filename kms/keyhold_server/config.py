"""
Configuration management for Keyhold Server.

All configuration is done via environment variables with the KEYHOLD_
prefix. Uses pydantic-settings for environment variable loading.

Invariants:
    - All settings have sensible defaults for local development
    - Settings are never logged in full; log_config() selects safe fields

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep env var names stable; deployments depend on them
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

LOG_FORMATS = ("json", "text")


class Settings(BaseSettings):
    """Server configuration loaded from environment."""

    # SQLite storage
    database_path: str = Field(
        default="/var/lib/keyhold/keyhold.db", description="SQLite database file"
    )
    wal_mode: bool = Field(default=True, description="Enable SQLite WAL journal mode")
    busy_timeout_ms: int = Field(default=5000, description="SQLite busy timeout")
    cache_size_pages: int = Field(default=-64000, description="SQLite cache size (negative = KB)")

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json, text)")

    model_config = {"env_prefix": "KEYHOLD_"}

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_FORMATS:
            raise ValueError(f"Invalid log format '{value}'. Must be one of: json, text")
        return value

    @field_validator("busy_timeout_ms")
    @classmethod
    def _check_busy_timeout(cls, value: int) -> int:
        if value < 0:
            raise ValueError("busy_timeout_ms must be non-negative")
        return value

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Server configuration loaded",
            extra={
                "database_path": self.database_path,
                "wal_mode": self.wal_mode,
                "busy_timeout_ms": self.busy_timeout_ms,
                "log_level": self.log_level,
                "log_format": self.log_format,
            },
        )


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
