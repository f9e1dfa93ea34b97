"""
Bitrix Cache - Value Codec

Turns caller values into engine payloads and back.

Packing, in priority order:
1. objects: pickled, and only when their type is on the allow-list
2. list / tuple / dict: JSON text
3. scalars: str and bytes as-is, None and False as an empty payload,
   other scalars as their JSON text

Unpacking tries a restricted unpickle (allow-listed types only), then JSON,
then falls back to the raw text. JSON that decodes to null or false counts
as not decoded, so the text "false" reads back as "false".

Pickle streams naming any type outside the allow-list are never
reconstructed, even if they were written under an older, wider allow-list.
"""

from __future__ import annotations

import importlib
import inspect
import io
import json
import logging
import pickle
import sys
from collections.abc import Iterator
from enum import Enum
from typing import Any, NamedTuple

from ..errors import PackingNotAllowedError

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, bytes, int, float, bool, type(None))
JSON_TYPES = (list, tuple, dict)

# PROTO opcode; every payload this codec pickles starts with it
PICKLE_MAGIC = b"\x80"


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def resolve_class(name: str) -> type | None:
    """
    Resolve a dotted path such as "app.models.User" to a class.

    Returns None when the module cannot be imported or the attribute is
    missing or is not a class.
    """
    parts = name.split(".")
    if len(parts) < 2 or not all(parts):
        return None

    # Try the longest importable module prefix, so nested classes resolve too
    for split in range(len(parts) - 1, 0, -1):
        try:
            target: Any = importlib.import_module(".".join(parts[:split]))
        except ImportError:
            continue
        try:
            for attr in parts[split:]:
                target = getattr(target, attr)
        except AttributeError:
            return None
        return target if inspect.isclass(target) else None

    return None


class AllowList:
    """
    Instance-owned registry of types allowed for object packing.

    Membership follows isinstance/issubclass, so registering a base class,
    an ABC or a runtime-checkable Protocol allows all of its implementations.
    Types are only ever added.
    """

    def __init__(self) -> None:
        self._types: list[type] = []

    def add(self, cls_or_name: type | str) -> bool:
        """Register a type. Returns False when it does not resolve to a class."""
        if isinstance(cls_or_name, str):
            cls = resolve_class(cls_or_name)
        else:
            cls = cls_or_name if inspect.isclass(cls_or_name) else None

        if cls is None:
            return False
        if cls not in self._types:
            self._types.append(cls)
        return True

    def allows_instance(self, value: Any) -> bool:
        return any(self._is_instance(value, cls) for cls in self._types)

    def allows_type(self, cls: type) -> bool:
        return any(self._is_subclass(cls, allowed) for allowed in self._types)

    @staticmethod
    def _is_instance(value: Any, cls: type) -> bool:
        try:
            return isinstance(value, cls)
        except TypeError:
            # Non runtime-checkable Protocols refuse isinstance
            return False

    @staticmethod
    def _is_subclass(candidate: type, cls: type) -> bool:
        try:
            return issubclass(candidate, cls)
        except TypeError:
            return False

    def __iter__(self) -> Iterator[type]:
        return iter(tuple(self._types))

    def __len__(self) -> int:
        return len(self._types)

    def __bool__(self) -> bool:
        return bool(self._types)

    def __repr__(self) -> str:
        return f"AllowList({[qualified_name(cls) for cls in self._types]})"


class PackingKind(str, Enum):
    """Wire representation chosen for a value."""

    SCALAR = "scalar"
    JSON = "json"
    OBJECT = "object"


class PackedValue(NamedTuple):
    """Engine-facing payload tagged with how it was produced."""

    kind: PackingKind
    payload: bytes


class RestrictedUnpickler(pickle.Unpickler):
    """Unpickler that only resolves allow-listed types."""

    def __init__(self, file: io.BytesIO, allowed: AllowList) -> None:
        super().__init__(file)
        self._allowed = allowed

    def find_class(self, module: str, name: str) -> Any:
        # Only look at modules already imported; stored bytes never trigger imports
        target: Any = sys.modules.get(module)
        try:
            for attr in name.split("."):
                target = getattr(target, attr)
        except AttributeError:
            target = None

        if target is None or not inspect.isclass(target) or not self._allowed.allows_type(target):
            raise pickle.UnpicklingError(f"Reconstruction of {module}.{name} is not allowed")
        return target


class ValueCodec:
    """Packs values for an engine and unpacks engine payloads."""

    def __init__(self, allowed: AllowList | None = None) -> None:
        self.allowed = allowed if allowed is not None else AllowList()

    def pack(self, value: Any) -> PackedValue:
        """
        Pack a value into its engine payload.

        Raises:
            PackingNotAllowedError: value is an object whose type is not
                allow-listed, or a structure JSON cannot represent
        """
        if not isinstance(value, SCALAR_TYPES + JSON_TYPES):
            if not self.allowed.allows_instance(value):
                logger.warning(
                    "Refused to pack object of non-allowed type",
                    extra={"value_type": qualified_name(type(value))},
                )
                raise PackingNotAllowedError(qualified_name(type(value)))
            return PackedValue(PackingKind.OBJECT, pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL))

        if isinstance(value, JSON_TYPES):
            try:
                text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
            except (TypeError, ValueError) as e:
                raise PackingNotAllowedError(
                    type(value).__name__,
                    details={"reason": "not JSON serializable", "error": str(e)},
                ) from e
            return PackedValue(PackingKind.JSON, text.encode("utf-8"))

        if value is None or value is False:
            return PackedValue(PackingKind.SCALAR, b"")
        if isinstance(value, bytes):
            return PackedValue(PackingKind.SCALAR, value)
        if isinstance(value, str):
            return PackedValue(PackingKind.SCALAR, value.encode("utf-8"))
        return PackedValue(PackingKind.SCALAR, json.dumps(value).encode("ascii"))

    def encode(self, value: Any) -> bytes:
        return self.pack(value).payload

    def _unpickle(self, payload: bytes) -> tuple[bool, Any]:
        try:
            return True, RestrictedUnpickler(io.BytesIO(payload), self.allowed).load()
        except Exception as e:
            # Not a pickle stream, truncated, or names a disallowed type
            if isinstance(e, pickle.UnpicklingError) and "not allowed" in str(e):
                logger.warning("Refused to reconstruct cached object", extra={"error": str(e)})
            return False, None

    @staticmethod
    def _text(payload: bytes) -> str | None:
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError:
            return None

    def decode(self, payload: bytes) -> Any:
        """
        Unpack an engine payload.

        Returns the reconstructed object, the decoded JSON value, or the raw
        text (raw bytes when the payload is not UTF-8). JSON null and false
        are not decoded values: "null" and "false" come back as text. None
        and False are packed as b"" and read back as "".
        """
        if self.allowed and payload.startswith(PICKLE_MAGIC):
            ok, value = self._unpickle(payload)
            if ok:
                return value

        text = self._text(payload)
        if text is None:
            return payload

        try:
            value = json.loads(text)
        except ValueError:
            return text
        if value is None or value is False:
            return text
        return value
