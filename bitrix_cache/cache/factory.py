"""
Bitrix Cache - Engine Factory and Namespace Registry

Builds storage engines from CacheConfig and hands out one facade per
cache namespace.

Key points:
- create_engine() builds an engine for CACHE_ENGINE=memory|files|redis
  - Defaults to files, or redis when REDIS_URL is set
  - redis needs the optional redis client and REDIS_URL
- get_default_engine() is the process-wide engine every facade built without
  an explicit engine shares, so namespaces written by one facade are
  visible to (and wiped by) the others
- get_cache(init_dir, base_dir) returns the facade for "/base_dir/init_dir";
  equivalent spellings of a namespace map to the same facade

Examples:
    from bitrix_cache.cache.factory import get_cache

    menu = get_cache("menu")
    menu.set("top", ["home", "news"], ttl="P1D")

    # Same namespace, same facade
    assert get_cache("/menu/") is menu
"""

from __future__ import annotations

import logging
import threading

from ..config import CacheConfig, CacheEngineBackend, get_config
from ..errors import ConfigurationError
from .backends.files import FilesCacheEngine
from .backends.memory import MemoryCacheEngine
from .facade import Cache
from .interface import CacheEngine, namespace_path

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_default_engine: CacheEngine | None = None
_namespaces: dict[str, Cache] = {}


def _create_redis_engine(config: CacheConfig) -> CacheEngine:
    """Internal helper to construct a redis engine with lazy import."""
    if not config.redis_url:
        raise ConfigurationError(
            "REDIS_URL must be set when CACHE_ENGINE=redis",
            details={"env": "REDIS_URL", "engine": "redis"},
        )

    # The redis client is an optional extra
    try:
        from .backends.redis import RedisCacheEngine
    except ImportError as e:
        logger.error(
            "Redis engine selected but redis client is not installed",
            extra={"package": "redis>=5.0.0", "error": str(e)},
        )
        raise ConfigurationError(
            "Redis engine selected but redis client is unavailable. "
            "Install with: pip install 'bitrix-simple-cache[redis]'",
            details={"package": "redis>=5.0.0", "error": str(e), "engine": "redis"},
        ) from e

    return RedisCacheEngine(
        redis_url=config.redis_url,
        prefix=config.redis_prefix,
        max_connections=config.redis_max_connections,
        socket_timeout=config.redis_socket_timeout,
    )


def create_engine(config: CacheConfig | None = None) -> CacheEngine:
    """
    Create a storage engine based on configuration.

    Args:
        config: Cache configuration (uses global config if not provided)

    Returns:
        A new, unshared storage engine

    Raises:
        ConfigurationError: If the engine is unknown or unavailable
    """
    if config is None:
        config = get_config().cache

    engine = CacheEngineBackend(config.engine)
    if engine == CacheEngineBackend.MEMORY:
        return MemoryCacheEngine(max_size=config.max_size)
    if engine == CacheEngineBackend.FILES:
        return FilesCacheEngine(root=config.files_root)
    if engine == CacheEngineBackend.REDIS:
        return _create_redis_engine(config)

    raise ConfigurationError(  # pragma: no cover
        f"Unknown cache engine: {config.engine}",
        details={"engine": str(config.engine), "supported": [e.value for e in CacheEngineBackend]},
    )


def get_default_engine() -> CacheEngine:
    """Return the shared engine, building it from the global config on first use."""
    global _default_engine

    with _lock:
        if _default_engine is None:
            _default_engine = create_engine()
            logger.info(
                "Default cache engine ready: %s",
                type(_default_engine).__name__,
                extra={"engine": type(_default_engine).__name__},
            )
        return _default_engine


def get_cache(init_dir: str = "", base_dir: str | None = None) -> Cache:
    """
    Get the facade for a cache namespace.

    Args:
        init_dir: Second namespace segment
        base_dir: First namespace segment (default: CACHE_BASE_DIR)

    Returns:
        The facade bound to the shared engine. Facade settings (default TTL,
        allow-list, falsy policy) come from the global config the first
        time a namespace is requested.
    """
    config = get_config().cache
    if base_dir is None:
        base_dir = config.base_dir
    namespace = namespace_path(base_dir, init_dir)

    cache = _namespaces.get(namespace)
    if cache is not None:
        return cache

    engine = get_default_engine()
    with _lock:
        # Another thread may have registered the namespace meanwhile
        cache = _namespaces.get(namespace)
        if cache is None:
            cache = Cache.from_config(
                config.model_copy(update={"base_dir": base_dir, "init_dir": init_dir}),
                engine=engine,
            )
            _namespaces[namespace] = cache
            logger.debug("Registered cache namespace %s", namespace, extra={"namespace": namespace})
    return cache


def cached_namespaces() -> list[str]:
    """Canonical paths of the namespaces handed out by get_cache()."""
    return sorted(_namespaces)


def close_default_engine() -> None:
    """
    Close the shared engine and forget every namespace facade bound to it.

    The next get_cache() or Cache() builds a fresh engine.
    """
    global _default_engine

    with _lock:
        engine, _default_engine = _default_engine, None
        _namespaces.clear()

    if engine is None:
        return
    try:
        engine.close()
    except Exception as e:
        logger.error(
            "Error closing default cache engine: %s",
            e,
            extra={"engine": type(engine).__name__, "error": str(e)},
            exc_info=True,
        )
        return
    logger.info("Default cache engine closed", extra={"engine": type(engine).__name__})


def reset_cache_factory() -> None:
    """Drop the shared engine and namespace facades without closing anything."""
    global _default_engine

    with _lock:
        _default_engine = None
        _namespaces.clear()
