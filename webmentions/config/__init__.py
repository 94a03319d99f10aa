"""Configuration module."""

from webmentions.config.configuration import (
    AdminConfig,
    AppConfig,
    ConfigurationError,
    CosmosDBConfig,
    FetchConfig,
    LoggingConfig,
    StoreConfig,
    TargetsConfig,
    ThumbnailConfig,
    configure_logging,
    get_environment,
    load_config,
)

__all__ = [
    "AdminConfig",
    "AppConfig",
    "ConfigurationError",
    "CosmosDBConfig",
    "FetchConfig",
    "LoggingConfig",
    "StoreConfig",
    "TargetsConfig",
    "ThumbnailConfig",
    "configure_logging",
    "get_environment",
    "load_config",
]
