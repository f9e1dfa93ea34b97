"""
Bitrix Cache - Engine Interface

Defines the abstract contract every storage engine plugged into the
cache facade must satisfy. Engines persist opaque byte payloads; the facade
owns keys, encoding and TTL resolution.
"""

from abc import ABC, abstractmethod
from typing import Any


def namespace_path(base_dir: str, init_dir: str) -> str:
    """
    Join the two namespace segments into a canonical "/base/init" path.

    Empty segments are dropped and repeated slashes collapse, so
    ("/bitrix/cache", "") and ("bitrix/cache/", "/") name the same namespace.
    """
    parts = [part for part in f"{base_dir}/{init_dir}".split("/") if part]
    return "/" + "/".join(parts)


class CacheEngine(ABC):
    """
    Abstract base class for storage engines.

    All engines implement this interface so the facade behaves the same
    over memory, files, redis or any other medium.
    """

    @abstractmethod
    def read(self, base_dir: str, init_dir: str, key: str, ttl: int) -> bytes | None:
        """
        Read a payload.

        Args:
            base_dir: First namespace segment
            init_dir: Second namespace segment
            key: Normalized cache key
            ttl: Facade default TTL (engines may ignore it)

        Returns:
            Stored bytes on a hit, None on a miss or expired entry
        """
        pass

    @abstractmethod
    def write(self, base_dir: str, init_dir: str, key: str, value: bytes, ttl: int) -> None:
        """
        Store a payload.

        Args:
            base_dir: First namespace segment
            init_dir: Second namespace segment
            key: Normalized cache key
            value: Encoded payload
            ttl: Time-to-live in seconds (expiry policy is the engine's)
        """
        pass

    @abstractmethod
    def clean(self, base_dir: str, init_dir: str, key: str | None = None) -> None:
        """
        Remove one key, or the whole namespace when key is None.

        Wiping a namespace also removes namespaces nested under it.
        """
        pass

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        """
        Get engine statistics.

        Returns:
            Dictionary with engine statistics (hits, misses, size, etc.)
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close the engine and release resources.

        Should be called during graceful shutdown.
        """
        pass
