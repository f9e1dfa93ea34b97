"""
Bitrix Cache - Simple Cache Facade

get/set/delete/has/batch cache API over pluggable storage engines,
with safe value packing, key normalization and calendar-aware TTLs.
"""

__version__ = "1.0.0"

from .cache import Cache, CacheEngine, get_cache, normalize_key
from .errors import (
    BitrixCacheError,
    CacheOperationError,
    ConfigurationError,
    InvalidTTLError,
    PackingNotAllowedError,
)

__all__ = [
    "Cache",
    "CacheEngine",
    "get_cache",
    "normalize_key",
    "BitrixCacheError",
    "CacheOperationError",
    "ConfigurationError",
    "InvalidTTLError",
    "PackingNotAllowedError",
]
