"""
Bitrix Cache - Value Codec Tests

Covers the packing priority (object / JSON / scalar), the allow-list gate on
both the packing and the unpacking side, and the unpacking fallbacks.
"""

import pickle
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import pytest

from bitrix_cache.cache.codec import AllowList, PackingKind, ValueCodec, resolve_class
from bitrix_cache.errors import ErrorCode, PackingNotAllowedError


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Label:
    text: str


@dataclass
class Wrapper:
    inner: Any


class Shape(ABC):
    @abstractmethod
    def area(self) -> float: ...


class Square(Shape):
    def __init__(self, side: float) -> None:
        self.side = side

    def area(self) -> float:
        return self.side * self.side

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Square) and other.side == self.side


class CallsBuiltin:
    """Pickles as a call to a plain function, never a class."""

    def __reduce__(self) -> tuple[Any, ...]:
        return (len, ("abc",))


def dotted(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def codec_allowing(*classes: type) -> ValueCodec:
    allowed = AllowList()
    for cls in classes:
        allowed.add(cls)
    return ValueCodec(allowed)


class TestAllowList:
    """Test suite for the allow-list registry."""

    def test_empty_by_default(self) -> None:
        allowed = AllowList()
        assert len(allowed) == 0
        assert not allowed
        assert allowed.allows_instance(Point(1, 2)) is False

    def test_add_by_type(self) -> None:
        allowed = AllowList()
        assert allowed.add(Point) is True
        assert allowed.allows_instance(Point(1, 2)) is True
        assert allowed.allows_instance(Label("x")) is False

    def test_add_by_dotted_path(self) -> None:
        allowed = AllowList()
        assert allowed.add(dotted(Point)) is True
        assert list(allowed) == [Point]

    def test_unresolvable_names_are_ignored(self) -> None:
        allowed = AllowList()
        assert allowed.add("no_such_module.Missing") is False
        assert allowed.add("json.NoSuchClass") is False
        assert allowed.add("builtins.len") is False  # not a class
        assert allowed.add("Point") is False  # not a dotted path
        assert len(allowed) == 0

    def test_duplicate_registration_kept_once(self) -> None:
        allowed = AllowList()
        allowed.add(Point)
        allowed.add(dotted(Point))
        assert len(allowed) == 1

    def test_base_class_allows_subclasses(self) -> None:
        allowed = AllowList()
        allowed.add(Shape)
        assert allowed.allows_instance(Square(2)) is True
        assert allowed.allows_type(Square) is True

    def test_resolve_class_nested(self) -> None:
        assert resolve_class("json.decoder.JSONDecoder") is not None
        assert resolve_class("collections.OrderedDict") is not None
        assert resolve_class("") is None


class TestPacking:
    """Test suite for ValueCodec.pack."""

    def test_object_without_allow_list_refused(self) -> None:
        codec = ValueCodec()
        with pytest.raises(PackingNotAllowedError) as exc_info:
            codec.pack(Point(1, 2))

        assert exc_info.value.error_code == ErrorCode.PACKING_NOT_ALLOWED
        assert exc_info.value.value_type == dotted(Point)

    def test_object_of_other_type_refused(self) -> None:
        codec = codec_allowing(Label)
        with pytest.raises(PackingNotAllowedError):
            codec.pack(Point(1, 2))

    def test_registering_makes_same_call_succeed(self) -> None:
        codec = ValueCodec()
        with pytest.raises(PackingNotAllowedError):
            codec.pack(Point(1, 2))

        codec.allowed.add(Point)
        packed = codec.pack(Point(1, 2))
        assert packed.kind == PackingKind.OBJECT
        assert isinstance(packed.payload, bytes)

    @pytest.mark.parametrize("value", [[1, 2, 3], {"a": 1}, (1, "two"), []])
    def test_sequences_and_mappings_are_json(self, value: Any) -> None:
        packed = ValueCodec().pack(value)
        assert packed.kind == PackingKind.JSON

    def test_json_text_is_compact_utf8(self) -> None:
        packed = ValueCodec().pack({"name": "Кеш", "n": [1, 2]})
        assert packed.payload == '{"name":"Кеш","n":[1,2]}'.encode()

    def test_unserializable_structure_refused(self) -> None:
        codec = codec_allowing(Point)
        with pytest.raises(PackingNotAllowedError):
            codec.pack([Point(1, 2)])

    def test_string_passes_through(self) -> None:
        packed = ValueCodec().pack("hello")
        assert packed.kind == PackingKind.SCALAR
        assert packed.payload == b"hello"

    def test_bytes_pass_through(self) -> None:
        assert ValueCodec().encode(b"\x00\xff") == b"\x00\xff"

    @pytest.mark.parametrize(
        "value, payload",
        [(42, b"42"), (3.5, b"3.5"), (True, b"true"), (0, b"0"), (False, b""), (None, b"")],
    )
    def test_other_scalars_become_text(self, value: Any, payload: bytes) -> None:
        packed = ValueCodec().pack(value)
        assert packed.kind == PackingKind.SCALAR
        assert packed.payload == payload


class TestUnpacking:
    """Test suite for ValueCodec.decode."""

    def test_allowed_object_round_trip(self) -> None:
        codec = codec_allowing(Point)
        assert codec.decode(codec.encode(Point(3, 4))) == Point(3, 4)

    def test_subclass_of_allowed_base_round_trip(self) -> None:
        codec = codec_allowing(Shape)
        restored = codec.decode(codec.encode(Square(1.5)))
        assert isinstance(restored, Square)
        assert restored == Square(1.5)

    @pytest.mark.parametrize(
        "value",
        [
            {"nested": {"key": "value", "list": [1, 2, 3]}},
            [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
            {"unicode": "привет"},
        ],
    )
    def test_json_round_trip(self, value: Any) -> None:
        codec = ValueCodec()
        assert codec.decode(codec.encode(value)) == value

    def test_json_round_trip_with_allow_list(self) -> None:
        codec = codec_allowing(Point)
        assert codec.decode(codec.encode({"a": [1, 2]})) == {"a": [1, 2]}

    def test_tuple_comes_back_as_list(self) -> None:
        codec = ValueCodec()
        assert codec.decode(codec.encode((1, 2))) == [1, 2]

    def test_plain_text_is_literal(self) -> None:
        assert ValueCodec().decode(b"hello world") == "hello world"

    def test_numeric_text_decodes_as_number(self) -> None:
        # Strings that are valid JSON come back decoded
        codec = ValueCodec()
        assert codec.decode(codec.encode("123")) == 123

    def test_non_utf8_payload_is_returned_raw(self) -> None:
        assert ValueCodec().decode(b"\xff\xfe\x00") == b"\xff\xfe\x00"

    @pytest.mark.parametrize("text", ["false", "null", " null "])
    def test_json_null_and_false_stay_text(self, text: str) -> None:
        codec = ValueCodec()
        assert codec.decode(codec.encode(text)) == text

    def test_json_true_and_zero_decode(self) -> None:
        codec = ValueCodec()
        assert codec.decode(b"true") is True
        assert codec.decode(b"0") == 0

    @pytest.mark.parametrize("value", [None, False])
    def test_none_and_false_read_back_as_empty_text(self, value: Any) -> None:
        codec = ValueCodec()
        assert codec.decode(codec.encode(value)) == ""

    def test_object_not_reconstructed_without_allow_list(self) -> None:
        payload = codec_allowing(Point).encode(Point(1, 2))

        result = ValueCodec().decode(payload)

        assert not isinstance(result, Point)
        assert result == payload

    def test_object_not_reconstructed_after_allow_list_change(self) -> None:
        """Bytes written under a wider allow-list are refused by a narrower one."""
        payload = codec_allowing(Point).encode(Point(1, 2))

        result = codec_allowing(Label).decode(payload)

        assert not isinstance(result, Point)
        assert result == payload

    def test_disallowed_type_nested_in_allowed_object_refused(self) -> None:
        payload = codec_allowing(Wrapper).encode(Wrapper(inner=Point(1, 2)))

        result = codec_allowing(Wrapper).decode(payload)

        assert not isinstance(result, Wrapper)
        assert result == payload

    def test_non_class_globals_refused(self) -> None:
        payload = pickle.dumps(CallsBuiltin(), protocol=pickle.HIGHEST_PROTOCOL)

        result = codec_allowing(Point).decode(payload)

        assert result == payload

    def test_truncated_pickle_falls_through(self) -> None:
        payload = codec_allowing(Point).encode(Point(1, 2))[:-3]

        assert codec_allowing(Point).decode(payload) == payload
