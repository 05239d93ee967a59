"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_str
from .errors import ConfigurationError, MissingConfigurationError
from .inventory import AgencyConfig, ImportConfig, get_agency_config, get_import_config
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "AgencyConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_str",
    "get_agency_config",
    "get_database_config",
    "get_database_uri",
    "get_import_config",
    "get_storage_config",
]
