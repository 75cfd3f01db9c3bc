"""Application configuration helpers."""

from __future__ import annotations

from .apply import MAX_PAGE_SIZE, ApplyConfig, get_apply_config
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .repository import RepositoryConfig, get_repository_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "MAX_PAGE_SIZE",
    "ApplyConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RepositoryConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_apply_config",
    "get_database_config",
    "get_database_uri",
    "get_repository_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
