"""Application configuration helpers."""

from __future__ import annotations

from .env import is_ci_environment, optional_int_env
from .errors import ConfigurationError
from .importer import DATASET_STATE_KEY, ImporterConfig, get_importer_config
from .logging import configure_logging
from .retry import RetryPolicy, get_retry_policy
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "DATASET_STATE_KEY",
    "ConfigurationError",
    "DatabaseConfig",
    "ImporterConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_database_uri",
    "get_importer_config",
    "get_retry_policy",
    "is_ci_environment",
    "optional_int_env",
]
