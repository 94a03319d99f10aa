"""Configuration module for the Webmention triage service.

Loads settings from environment-specific config files:
- APP_ENV=dev  → config_dev.yaml (SQLite store, local development)
- APP_ENV=test → config_test.yaml (Cosmos DB store, production-like testing)
- Default      → config.yaml

Secrets (Cosmos DB key, OAuth client id, admin list) are loaded from .env.
Fails fast with clear error messages if required configuration is missing.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import yaml
from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_project_root() -> Path:
    """Get the project root directory (where config.yaml lives)."""
    # Navigate from webmentions/config/ up to project root
    return Path(__file__).parent.parent.parent


def _get_config_filename() -> str:
    """Get config filename based on APP_ENV environment variable.

    Returns:
        Config filename:
        - APP_ENV=dev  → config_dev.yaml
        - APP_ENV=test → config_test.yaml
        - Default      → config.yaml
    """
    app_env = os.environ.get("APP_ENV", "").lower()

    if app_env == "dev":
        return "config_dev.yaml"
    elif app_env == "test":
        return "config_test.yaml"
    else:
        return "config.yaml"


def _load_yaml_config() -> dict:
    """Load configuration from environment-specific config file."""
    config_filename = _get_config_filename()
    config_path = _get_project_root() / config_filename

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}. "
            f"Set APP_ENV to 'dev' or 'test', or create {config_filename}."
        )

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def _get_required_env(key: str) -> str:
    """Get required environment variable or raise ConfigurationError."""
    value = os.environ.get(key)
    if not value:
        raise ConfigurationError(
            f"Required environment variable '{key}' is not set. "
            f"Please add it to your .env file."
        )
    return value


def _get_optional_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get optional environment variable with default."""
    return os.environ.get(key, default)


def _split_list(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated environment value into a tuple of entries."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class TargetsConfig:
    """Targets that incoming mentions may point at."""
    allowed_hosts: Tuple[str, ...]


@dataclass(frozen=True)
class StoreConfig:
    """Document store configuration with backend toggle."""
    backend: str  # "sqlite" or "cosmosdb"
    namespace: str
    sqlite_path: str


@dataclass(frozen=True)
class CosmosDBConfig:
    """Azure Cosmos DB configuration for the document store."""
    endpoint: str
    key: str
    database_name: str
    container_name: str


@dataclass(frozen=True)
class FetchConfig:
    """Limits applied when fetching source pages and author photos."""
    timeout_seconds: float
    max_source_bytes: int
    max_image_bytes: int
    user_agent: str


@dataclass(frozen=True)
class ThumbnailConfig:
    """Author thumbnail configuration."""
    size: int


@dataclass(frozen=True)
class AdminConfig:
    """Administrator identity configuration."""
    client_id: Optional[str]
    admins: Tuple[str, ...]


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""
    level: str


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration container."""
    host: str
    targets: TargetsConfig
    store: StoreConfig
    fetch: FetchConfig
    thumbnail: ThumbnailConfig
    admin: AdminConfig
    logging: LoggingConfig
    cosmosdb: Optional[CosmosDBConfig]  # Only required when store.backend == "cosmosdb"


def load_config() -> AppConfig:
    """
    Load and validate all application configuration.

    Loads from config.yaml for non-sensitive settings and .env for secrets.
    Fails fast if required configuration is missing.

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigurationError: If required configuration is missing.
    """
    # Load environment variables from .env file
    load_dotenv()

    yaml_config = _load_yaml_config()

    # Build Targets config
    targets_section = yaml_config.get("targets", {})
    allowed_hosts = tuple(targets_section.get("allowed_hosts", ())) or _split_list(
        _get_optional_env("TARGETS")
    )
    if not allowed_hosts:
        raise ConfigurationError(
            "No allowed target hosts configured. "
            "Set targets.allowed_hosts in the config file or TARGETS in .env."
        )

    targets_config = TargetsConfig(allowed_hosts=allowed_hosts)

    # Build Store config
    store_section = yaml_config.get("store", {})
    store_backend = store_section.get("backend", "sqlite")

    store_config = StoreConfig(
        backend=store_backend,
        namespace=store_section.get("namespace") or _get_required_env("DATASTORE_NAMESPACE"),
        sqlite_path=store_section.get("sqlite_path", "webmentions.db"),
    )

    # Build CosmosDB config (only if backend is cosmosdb)
    cosmosdb_config: Optional[CosmosDBConfig] = None
    if store_backend == "cosmosdb":
        cosmosdb_section = yaml_config.get("cosmosdb", {})
        cosmosdb_config = CosmosDBConfig(
            endpoint=_get_required_env("COSMOSDB_ENDPOINT"),
            key=_get_required_env("COSMOSDB_KEY"),
            database_name=cosmosdb_section.get("database_name", "webmentions"),
            container_name=cosmosdb_section.get("container_name", "documents"),
        )

    # Build Fetch config
    fetch_section = yaml_config.get("fetch", {})

    fetch_config = FetchConfig(
        timeout_seconds=float(fetch_section.get("timeout_seconds", 30)),
        max_source_bytes=int(fetch_section.get("max_source_bytes", 1024 * 1024)),
        max_image_bytes=int(fetch_section.get("max_image_bytes", 512 * 1024)),
        user_agent=fetch_section.get("user_agent", "webmentions-triage/1.0"),
    )

    thumbnail_section = yaml_config.get("thumbnail", {})

    thumbnail_config = ThumbnailConfig(
        size=int(thumbnail_section.get("size", 32)),
    )
    if thumbnail_config.size <= 0:
        raise ConfigurationError(f"thumbnail.size must be positive, got {thumbnail_config.size}")

    # Build Admin config
    admin_section = yaml_config.get("admin", {})

    admin_config = AdminConfig(
        client_id=admin_section.get("client_id") or _get_optional_env("CLIENT_ID"),
        admins=tuple(admin_section.get("admins", ())) or _split_list(_get_optional_env("ADMINS")),
    )

    # Build Logging config
    logging_section = yaml_config.get("logging", {})

    logging_config = LoggingConfig(
        level=logging_section.get("level", "INFO"),
    )

    return AppConfig(
        host=yaml_config.get("host") or _get_optional_env("HOST", ""),
        targets=targets_config,
        store=store_config,
        fetch=fetch_config,
        thumbnail=thumbnail_config,
        admin=admin_config,
        logging=logging_config,
        cosmosdb=cosmosdb_config,
    )


def configure_logging(logging_config: LoggingConfig) -> None:
    """Configure root logging for entry points."""
    logging.basicConfig(
        level=logging_config.level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_environment() -> str:
    """Get current environment name.

    Returns:
        'dev', 'test', or 'default' based on APP_ENV.
    """
    app_env = os.environ.get("APP_ENV", "").lower()
    return app_env if app_env in ("dev", "test") else "default"
