"""Application configuration helpers."""

from __future__ import annotations

from .capture import CaptureConfig, get_capture_config
from .env import env_flag, env_number, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CaptureConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_number",
    "get_capture_config",
    "get_database_config",
    "get_storage_config",
    "require_env_vars",
]
