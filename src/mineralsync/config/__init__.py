"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, env_int, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .mindat import MindatConfig, get_mindat_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import get_match_policy, get_sync_policy

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MindatConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "env_int",
    "get_database_config",
    "get_match_policy",
    "get_mindat_config",
    "get_storage_config",
    "get_sync_policy",
    "optional_env_var",
    "require_env_vars",
]
