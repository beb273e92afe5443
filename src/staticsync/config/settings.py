"""Application configuration settings."""

from typing import Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .. import __version__


DEFAULT_INTERVAL_SECONDS = 10.0
DEFAULT_HASH_BUFFER_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_CONFIG_FILE = "~/.staticsync.json"


class SyncSettings(BaseSettings):
    """Reconciliation loop defaults."""

    interval_seconds: float = Field(default=DEFAULT_INTERVAL_SECONDS, gt=0)
    hash_buffer_size: int = Field(default=DEFAULT_HASH_BUFFER_SIZE, gt=0)
    once: bool = False
    max_workers: int = Field(default=1, ge=1)
    cancel_poll_seconds: float = Field(default=0.5, gt=0)

    model_config = SettingsConfigDict(env_prefix="STATICSYNC_SYNC_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["console", "json"] = "console"
    file_path: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="STATICSYNC_LOG_")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = "staticsync"
    version: str = __version__
    config_file: Optional[str] = None

    # Sub-settings
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="STATICSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance, built on first use so bad environment values
# surface where callers can handle them rather than at import
settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings.

    Raises:
        pydantic.ValidationError: If the environment holds invalid values
    """
    global settings
    if settings is None:
        settings = AppSettings()
    return settings


def reload_settings() -> AppSettings:
    """Re-read settings from the environment."""
    global settings
    settings = None
    return get_settings()
