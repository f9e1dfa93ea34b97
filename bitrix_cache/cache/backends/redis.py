"""
Bitrix Cache - Redis Engine

Synchronous Redis storage engine with:
- Opaque byte payloads (the facade does the encoding)
- Per-key TTL via SET EX
- Namespace prefixing, nested namespace wipes via SCAN + DEL

Optional: install the redis extra (redis>=5.0)

Example:
    engine = RedisCacheEngine(redis_url="redis://localhost:6379/0", prefix="bitrix")
    engine.write("/bitrix/cache", "", "/greeting", b"hello", 60)
    engine.read("/bitrix/cache", "", "/greeting", 3600)
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ...errors import CacheOperationError
from ..interface import CacheEngine, namespace_path

logger = logging.getLogger(__name__)

try:
    from redis import Redis
    from redis.exceptions import RedisError
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Redis client is required but not installed. "
        "Install with: pip install 'bitrix-simple-cache[redis]'"
    ) from e

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(text: str) -> str:
    """Escape Redis MATCH pattern metacharacters."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisCacheEngine(CacheEngine):
    """
    Redis storage engine.

    Notes:
    - Keys are "<prefix>:<namespace>:<key>", e.g. "bitrix:/bitrix/cache:/menu".
    - TTL is applied via Redis EX seconds (ttl <= 0 -> no expiry).
    - Redis failures are raised as CacheOperationError.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str = "bitrix",
        max_connections: int = 10,
        socket_timeout: int = 5,
        client: Redis | None = None,
    ) -> None:
        """
        Initialize Redis engine.

        Args:
            redis_url: Connection URL, e.g., redis://localhost:6379/0 or rediss:// for TLS
            prefix: Prefix for all keys
            max_connections: Connection pool size
            socket_timeout: Socket timeout in seconds
            client: Pre-built client (takes precedence over redis_url)
        """
        if client is None and not redis_url:
            raise ValueError("redis_url is required")

        self.prefix = prefix.strip() or "bitrix"
        self._hits = 0
        self._misses = 0
        self._writes = 0
        self._cleans = 0

        # Lazy connection; connects on first command
        self._client: Redis = client or Redis.from_url(  # type: ignore[call-overload]
            url=redis_url,
            decode_responses=False,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )

    # ------------ Helpers ------------

    def _make_key(self, base_dir: str, init_dir: str, key: str) -> str:
        return f"{self.prefix}:{namespace_path(base_dir, init_dir)}:{key}"

    def _namespace_patterns(self, base_dir: str, init_dir: str) -> list[str]:
        namespace = namespace_path(base_dir, init_dir)
        escaped = _escape_glob(f"{self.prefix}:{namespace.rstrip('/')}")
        # Own keys, then keys of namespaces nested below this one
        return [
            f"{_escape_glob(f'{self.prefix}:{namespace}')}:*",
            f"{escaped}/*",
        ]

    def _fail(self, action: str, e: Exception, **context: Any) -> CacheOperationError:
        logger.error(
            f"Failed to {action} in Redis: {e}",
            extra={**context, "prefix": self.prefix, "error": str(e)},
            exc_info=True,
        )
        return CacheOperationError(f"Redis {action} failed: {e}", details={**context, "error": str(e)})

    # ------------ Engine contract ------------

    def read(self, base_dir: str, init_dir: str, key: str, ttl: int) -> bytes | None:
        """Read a payload by key."""
        try:
            data = self._client.get(self._make_key(base_dir, init_dir, key))
        except RedisError as e:
            raise self._fail("read", e, key=key) from e

        if data is None:
            self._misses += 1
            return None

        self._hits += 1
        return data if isinstance(data, bytes) else str(data).encode("utf-8")

    def write(self, base_dir: str, init_dir: str, key: str, value: bytes, ttl: int) -> None:
        """Store a payload with TTL."""
        try:
            self._client.set(
                name=self._make_key(base_dir, init_dir, key),
                value=value,
                ex=ttl if ttl > 0 else None,
            )
        except RedisError as e:
            raise self._fail("write", e, key=key, ttl=ttl) from e
        self._writes += 1

    def clean(self, base_dir: str, init_dir: str, key: str | None = None) -> None:
        """Delete one key, or SCAN+DEL the whole namespace."""
        try:
            if key is not None:
                self._cleans += int(self._client.delete(self._make_key(base_dir, init_dir, key)))
                return

            total_deleted = 0
            batch_size = 1000
            for pattern in self._namespace_patterns(base_dir, init_dir):
                cursor = 0
                while True:
                    cursor, keys = self._client.scan(cursor=cursor, match=pattern, count=batch_size)
                    if keys:
                        total_deleted += int(self._client.delete(*keys))
                    if cursor == 0:
                        break
        except RedisError as e:
            raise self._fail("clean", e, key=key, namespace=namespace_path(base_dir, init_dir)) from e

        self._cleans += total_deleted
        logger.info(f"Cleared {total_deleted} keys from namespace '{namespace_path(base_dir, init_dir)}'")

    def get_stats(self) -> dict[str, Any]:
        """Return engine statistics and basic Redis info."""
        total_requests = self._hits + self._misses
        stats: dict[str, Any] = {
            "backend": "redis",
            "prefix": self.prefix,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round((self._hits / total_requests) * 100, 2) if total_requests else 0.0,
            "writes": self._writes,
            "cleans": self._cleans,
            "connected": False,
        }

        try:
            stats["connected"] = bool(self._client.ping())
            info = self._client.info(section="server")
            stats["redis_version"] = info.get("redis_version")
            stats["redis_mode"] = info.get("redis_mode")
        except RedisError as e:
            logger.warning(f"Failed to get Redis INFO (restricted or unavailable): {e}", extra={"error": str(e)})

        return stats

    def close(self) -> None:
        """Close the Redis client and release resources."""
        try:
            self._client.close()
            logger.info(f"Closed Redis cache engine for prefix '{self.prefix}'")
        except RedisError as e:
            logger.error(f"Error closing Redis client: {e}", extra={"prefix": self.prefix, "error": str(e)}, exc_info=True)
