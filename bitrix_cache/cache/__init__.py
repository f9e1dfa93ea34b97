"""
Bitrix Cache - Cache Module

Provides the cache facade and its pluggable storage engines.

- facade.py: Cache, the get/set/delete/has/batch API
- codec.py: value packing with the object allow-list
- ttl.py: TTL resolution (seconds, timedelta, calendar intervals)
- interface.py: Abstract engine contract all engines implement
- factory.py: Engine creation, the shared default engine, per-namespace facades
- backends/: Engine implementations (memory, files, redis)

Usage:
    from bitrix_cache.cache import get_cache

    cache = get_cache("menu")
    cache.set("key", "value", ttl=3600)
    value = cache.get("key")
"""

from .codec import AllowList, PackedValue, PackingKind, ValueCodec
from .facade import Cache, normalize_key
from .factory import (
    cached_namespaces,
    close_default_engine,
    create_engine,
    get_cache,
    get_default_engine,
    reset_cache_factory,
)
from .interface import CacheEngine, namespace_path
from .ttl import parse_duration, resolve_ttl

__all__ = [
    # Facade
    "Cache",
    "normalize_key",
    # Codec
    "AllowList",
    "PackedValue",
    "PackingKind",
    "ValueCodec",
    # TTL
    "parse_duration",
    "resolve_ttl",
    # Factory functions
    "create_engine",
    "get_default_engine",
    "get_cache",
    "cached_namespaces",
    "close_default_engine",
    "reset_cache_factory",
    # Interface
    "CacheEngine",
    "namespace_path",
]
