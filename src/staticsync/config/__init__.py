"""Configuration package for staticsync."""

from .settings import (
    SyncSettings,
    LoggingSettings,
    AppSettings,
    get_settings,
    reload_settings,
    DEFAULT_HASH_BUFFER_SIZE,
    DEFAULT_INTERVAL_SECONDS
)

from .schema import (
    PathPair,
    SyncConfig
)

from .loader import (
    ConfigLoader,
    ConfigurationError,
    load_config
)

__all__ = [
    "SyncSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
    "reload_settings",
    "DEFAULT_HASH_BUFFER_SIZE",
    "DEFAULT_INTERVAL_SECONDS",

    "PathPair",
    "SyncConfig",

    "ConfigLoader",
    "ConfigurationError",
    "load_config"
]
