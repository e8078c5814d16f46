"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_number, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .imports import ImportConfig, get_import_config
from .logging import configure_logging
from .notifications import NotificationConfig, get_notification_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "NotificationConfig",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_number",
    "get_database_config",
    "get_database_uri",
    "get_import_config",
    "get_notification_config",
    "get_storage_config",
    "require_env_vars",
]
