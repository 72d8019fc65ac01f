"""
Notification Engine Centralized Configuration

Provides validated, type-safe access to environment variables using Pydantic Settings.

Usage:
    from notify_intel.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Environment Variables:
    NOTIFY_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    NOTIFY_LOG_JSON: Output logs as JSON
    NOTIFY_CONFIG_FILE: YAML file with pipeline configuration
    NOTIFY_PREDICTOR_URL: Endpoint of a remote relevance model
    NOTIFY_PREDICTOR_TIMEOUT_SECONDS: Per-request timeout for the remote model
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_env_file() -> Path | None:
    """
    Find .env file by searching for the project root marker.

    Searches upward from this file's location for pyproject.toml,
    then checks for .env in that directory.
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            env_file = current / ".env"
            if env_file.exists():
                return env_file
            return None
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


_ENV_FILE = _find_project_env_file()


class NotifySettings(BaseSettings):
    """
    Engine settings with validation.

    Environment variables are loaded with the NOTIFY_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for engine components",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Pipeline Configuration
    # =========================================================================

    config_file: Path | None = Field(
        default=None,
        description="YAML file holding the filter pipeline configuration",
    )

    # =========================================================================
    # Remote Predictor
    # =========================================================================

    predictor_url: str | None = Field(
        default=None,
        description="HTTP endpoint of a remote relevance model",
    )

    predictor_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Per-request timeout for the remote relevance model",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> NotifySettings:
    """
    Get the singleton settings instance.

    The settings are validated at first access.
    """
    return NotifySettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled."""
    return get_settings().log_level == "DEBUG"
