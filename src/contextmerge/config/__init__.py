"""Application configuration helpers."""

from __future__ import annotations

from .engine import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_READINESS_REQUIREMENTS,
    MAX_ALTERNATIVES,
    MAX_COOLDOWN_SECONDS,
    MIN_COOLDOWN_SECONDS,
    REGRESSION_THRESHOLD_POINTS,
    EngineConfig,
    ReadinessRequirement,
    get_engine_config,
)
from .env import env_bool, env_int
from .errors import ConfigurationError
from .logging import configure_logging, resolve_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_COOLDOWN_SECONDS",
    "DEFAULT_READINESS_REQUIREMENTS",
    "MAX_ALTERNATIVES",
    "MAX_COOLDOWN_SECONDS",
    "MIN_COOLDOWN_SECONDS",
    "REGRESSION_THRESHOLD_POINTS",
    "ConfigurationError",
    "DatabaseConfig",
    "EngineConfig",
    "ReadinessRequirement",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_int",
    "get_database_config",
    "get_engine_config",
    "get_storage_config",
    "resolve_log_level",
]
