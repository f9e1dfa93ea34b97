"""
Bitrix Cache - Cache Facade

Simple get/set/delete/has/batch cache API over a pluggable storage engine.

The facade owns three policies and nothing else:
- key normalization (every key becomes "/..." with single slashes)
- value packing (see codec.py; objects only when allow-listed)
- TTL resolution (see ttl.py)

Physical storage, expiry, locking and durability belong to the engine.

Usage:
    from bitrix_cache import Cache

    cache = Cache(default_ttl=600, base_dir="/bitrix/cache", init_dir="menu")
    cache.set("top/items", ["home", "news"], ttl="P1D")
    cache.get("/top/items")  # ["home", "news"]
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .codec import AllowList, ValueCodec
from .interface import CacheEngine
from .ttl import TTLValue, resolve_ttl

if TYPE_CHECKING:
    from ..config import CacheConfig

logger = logging.getLogger(__name__)

_SLASH_RUN = re.compile(r"/{2,}")

_MISSING = object()


def normalize_key(raw_key: str) -> str:
    """
    Prefix the key with "/" and collapse repeated slashes.

    normalize_key("a//b") == normalize_key("/a/b") == "/a/b"
    """
    return _SLASH_RUN.sub("/", f"/{raw_key}")


class Cache:
    """
    Cache facade over a storage engine.

    Every instance owns its allow-list; facades with different allow-lists
    can share one engine. Batch operations run sequentially and are not
    transactional.
    """

    def __init__(
        self,
        default_ttl: int = 3600,
        engine: CacheEngine | None = None,
        base_dir: str = "/bitrix/cache",
        init_dir: str = "",
        *,
        allowed_classes: Iterable[type | str] = (),
        falsy_as_miss: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the facade.

        Args:
            default_ttl: TTL in seconds used when set() gets none
            engine: Storage engine (default: the shared default engine)
            base_dir: First namespace segment
            init_dir: Second namespace segment
            allowed_classes: Types (or dotted paths) pre-registered for packing
            falsy_as_miss: get() returns the default for falsy cached values
            clock: Source of "now" for calendar TTLs (default: local time)
        """
        if engine is None:
            from .factory import get_default_engine

            engine = get_default_engine()

        self._default_ttl = default_ttl
        self._engine = engine
        self._base_dir = base_dir
        self._init_dir = init_dir
        self._falsy_as_miss = falsy_as_miss
        self._clock = clock
        self._allowed = AllowList()
        self._codec = ValueCodec(self._allowed)

        for cls in allowed_classes:
            self.add_allowed_class(cls)

    @classmethod
    def from_config(cls, config: CacheConfig, engine: CacheEngine | None = None) -> Cache:
        """Build a facade (and, unless given, its engine) from CacheConfig."""
        if engine is None:
            from .factory import create_engine

            engine = create_engine(config)

        return cls(
            default_ttl=config.default_ttl,
            engine=engine,
            base_dir=config.base_dir,
            init_dir=config.init_dir,
            allowed_classes=config.allowed_classes,
            falsy_as_miss=config.falsy_as_miss,
        )

    # ------------ Properties ------------

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def engine(self) -> CacheEngine:
        return self._engine

    @property
    def base_dir(self) -> str:
        return self._base_dir

    @property
    def init_dir(self) -> str:
        return self._init_dir

    @property
    def allowed_classes(self) -> tuple[type, ...]:
        return tuple(self._allowed)

    # ------------ Allow-list ------------

    def add_allowed_class(self, name: type | str) -> None:
        """
        Allow objects of a type to be packed and reconstructed.

        Accepts a class (ABCs and Protocols included) or its dotted path.
        Names that do not resolve to a class are ignored.
        """
        if not self._allowed.add(name):
            logger.debug("Ignoring allow-list entry that is not a class", extra={"class_name": str(name)})

    # ------------ Single-key operations ------------

    def _read(self, key: str) -> bytes | None:
        return self._engine.read(self._base_dir, self._init_dir, normalize_key(key), self._default_ttl)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Fetch a value, or default on a miss.

        With falsy_as_miss (the default) a cached falsy value such as "",
        0, False or [] also yields default: it cannot be told apart from a miss.
        """
        payload = self._read(key)
        if payload is None:
            logger.debug("Cache miss", extra={"key": key})
            return default

        value = self._codec.decode(payload)
        if self._falsy_as_miss and not value:
            return default
        return value

    def set(self, key: str, value: Any, ttl: TTLValue = None) -> bool:
        """
        Store a value.

        Args:
            key: Cache key
            value: Scalar, list/tuple/dict, or instance of an allowed type
            ttl: None (default TTL), seconds, timedelta, relativedelta or
                ISO-8601 duration string

        Returns:
            True once the engine has accepted the write

        Raises:
            PackingNotAllowedError: value is an object of a non-allowed type
            InvalidTTLError: ttl cannot be resolved
        """
        normalized = normalize_key(key)
        payload = self._codec.encode(value)
        now = self._clock() if self._clock is not None else None
        seconds = resolve_ttl(ttl, self._default_ttl, now)

        self._engine.write(self._base_dir, self._init_dir, normalized, payload, seconds)
        return True

    def delete(self, key: str) -> bool:
        """Remove a key. Always True."""
        self._engine.clean(self._base_dir, self._init_dir, normalize_key(key))
        return True

    def clear(self) -> bool:
        """Wipe the whole namespace. Always True."""
        self._engine.clean(self._base_dir, self._init_dir)
        return True

    def has(self, key: str) -> bool:
        """Check whether the engine holds an entry for key."""
        return self._read(key) is not None

    # ------------ Batch operations ------------

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        """Fetch every key; misses map to default."""
        return {key: self.get(key, default) for key in keys}

    def set_multiple(
        self,
        values: Mapping[str, Any] | Iterable[tuple[str, Any]],
        ttl: TTLValue = None,
    ) -> bool:
        """
        Store several values with one TTL.

        Entries whose key is not a non-empty string are skipped. A packing
        error aborts the batch; entries written before it stay written.
        """
        items = values.items() if isinstance(values, Mapping) else values
        for key, value in items:
            if not isinstance(key, str) or not key:
                logger.debug("Skipping batch entry with invalid key", extra={"key": repr(key)})
                continue
            self.set(key, value, ttl)
        return True

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        """Remove every key. Always True."""
        for key in keys:
            self.delete(key)
        return True

    # ------------ Mapping sugar ------------

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.delete(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __repr__(self) -> str:
        return (
            f"Cache(base_dir={self._base_dir!r}, init_dir={self._init_dir!r}, "
            f"default_ttl={self._default_ttl}, engine={type(self._engine).__name__})"
        )
