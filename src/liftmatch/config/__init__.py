"""Application configuration helpers."""

from __future__ import annotations

from .divisions import DivisionCatalog, get_division_catalog, load_division_catalog
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .resolution import ResolutionConfig, get_resolution_config
from .sport80 import Sport80Config, get_sport80_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "DivisionCatalog",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "ResolutionConfig",
    "RetryPolicy",
    "Sport80Config",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_division_catalog",
    "get_resolution_config",
    "get_sport80_config",
    "get_storage_config",
    "load_division_catalog",
    "require_env_vars",
]
