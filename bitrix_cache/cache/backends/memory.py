"""
Bitrix Cache - Memory Engine

In-memory storage engine with LRU eviction and TTL support.
Thread-safe and suitable for single-process deployments and tests.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any

from ..interface import CacheEngine, namespace_path

logger = logging.getLogger(__name__)


class MemoryCacheEngine(CacheEngine):
    """
    In-memory storage engine with LRU eviction.

    Features:
    - LRU eviction when max_size is reached
    - Per-key TTL support (ttl <= 0 means no expiry)
    - Namespace wipes cover nested namespaces
    - Thread-safe operations
    """

    def __init__(self, max_size: int = 1000):
        """
        Initialize memory engine.

        Args:
            max_size: Maximum number of entries (LRU eviction when exceeded)
        """
        self.max_size = max_size

        # (namespace, key) -> (payload, expiry_time)
        self._entries: OrderedDict[tuple[str, str], tuple[bytes, float | None]] = OrderedDict()

        self._hits = 0
        self._misses = 0
        self._writes = 0
        self._cleans = 0
        self._evictions = 0

        self._lock = threading.RLock()

    def _is_expired(self, expiry: float | None) -> bool:
        """Check if entry is expired."""
        if expiry is None:
            return False
        return time.time() > expiry

    def read(self, base_dir: str, init_dir: str, key: str, ttl: int) -> bytes | None:
        """Read a payload from memory."""
        entry_key = (namespace_path(base_dir, init_dir), key)

        with self._lock:
            if entry_key not in self._entries:
                self._misses += 1
                return None

            value, expiry = self._entries[entry_key]

            if self._is_expired(expiry):
                del self._entries[entry_key]
                self._misses += 1
                return None

            # Mark as recently used
            self._entries.move_to_end(entry_key)
            self._hits += 1
            return value

    def write(self, base_dir: str, init_dir: str, key: str, value: bytes, ttl: int) -> None:
        """Store a payload in memory."""
        entry_key = (namespace_path(base_dir, init_dir), key)
        expiry = time.time() + ttl if ttl > 0 else None

        with self._lock:
            if entry_key not in self._entries and len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Evicted key from memory engine: {evicted_key}")

            self._entries[entry_key] = (value, expiry)
            self._entries.move_to_end(entry_key)
            self._writes += 1

    def clean(self, base_dir: str, init_dir: str, key: str | None = None) -> None:
        """Remove one key or a whole namespace."""
        namespace = namespace_path(base_dir, init_dir)

        with self._lock:
            if key is not None:
                if self._entries.pop((namespace, key), None) is not None:
                    self._cleans += 1
                return

            nested_prefix = namespace.rstrip("/") + "/"
            doomed = [
                entry_key
                for entry_key in self._entries
                if entry_key[0] == namespace or entry_key[0].startswith(nested_prefix)
            ]
            for entry_key in doomed:
                del self._entries[entry_key]
            self._cleans += len(doomed)
            logger.info(f"Cleared {len(doomed)} entries from memory namespace '{namespace}'")

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

            return {
                "backend": "memory",
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(hit_rate, 2),
                "writes": self._writes,
                "cleans": self._cleans,
                "evictions": self._evictions,
            }

    def close(self) -> None:
        """Close engine. Memory entries need no cleanup."""
        logger.debug("Memory cache engine closed")
