"""
Bitrix Cache - Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import configure_logging, get_config, load_config, reload_config, reset_config
from .schemas import (
    BitrixCacheConfig,
    CacheConfig,
    CacheEngineBackend,
    Environment,
    LogLevel,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "configure_logging",
    # Main config
    "BitrixCacheConfig",
    # Enums
    "Environment",
    "CacheEngineBackend",
    "LogLevel",
    # Config sections
    "CacheConfig",
]
