"""Unit tests for the key and value codecs."""

import pytest

from entity_db.components.codec import (
    decode_key,
    decode_value,
    encode_key,
    encode_value,
    prefix_range,
)
from entity_db.core.errors import InvalidArgumentError, KeyEncodingError


def test_key_roundtrip_mixed_parts():
    """Test that every supported part type decodes back unchanged."""
    key = ("person", b"\x00raw\x00", 0, 42, -7, 1.5, -2.25, True, False, "")
    assert decode_key(encode_key(key)) == key


def test_empty_key_encodes_to_empty_bytes():
    assert encode_key(()) == b""
    assert decode_key(b"") == ()


def test_string_order_is_preserved():
    """Test that encoded strings sort like the strings themselves."""
    values = ["", "a", "a\x00", "a\x00b", "ab", "b", "zz", "é"]
    encoded = [encode_key((v,)) for v in values]
    assert encoded == sorted(encoded)


def test_integer_order_is_preserved():
    values = [-(1 << 63), -1000, -1, 0, 1, 255, 256, (1 << 63) - 1]
    encoded = [encode_key((v,)) for v in values]
    assert encoded == sorted(encoded)


def test_float_order_is_preserved():
    values = [float("-inf"), -1e9, -1.5, -0.0001, 0.0, 0.0001, 1.5, 1e9, float("inf")]
    encoded = [encode_key((v,)) for v in values]
    assert encoded == sorted(encoded)


def test_type_order():
    """Test the order between part types: bytes < str < int < float < bool."""
    encoded = [encode_key((v,)) for v in (b"zz", "a", -5, -100.0, False, True)]
    assert encoded == sorted(encoded)


def test_tuple_order_is_part_by_part():
    """Test that a shorter key sorts before any key it prefixes."""
    keys = [("a",), ("a", "x"), ("a", 1), ("a", 2), ("ab",), ("b",)]
    encoded = [encode_key(k) for k in keys]
    assert encoded == sorted(encoded)


def test_negative_zero_matches_zero():
    assert encode_key((-0.0,)) == encode_key((0.0,))


def test_bool_is_not_encoded_as_int():
    assert encode_key((True,)) != encode_key((1,))
    assert decode_key(encode_key((True,))) == (True,)


def test_nan_rejected():
    with pytest.raises(KeyEncodingError):
        encode_key((float("nan"),))


def test_out_of_range_int_rejected():
    with pytest.raises(KeyEncodingError):
        encode_key((1 << 63,))


def test_unsupported_part_rejected():
    with pytest.raises(KeyEncodingError):
        encode_key((None,))
    with pytest.raises(KeyEncodingError):
        encode_key((["nested"],))


def test_unknown_type_code_rejected():
    with pytest.raises(KeyEncodingError):
        decode_key(b"\x7f")


def test_prefix_range_excludes_prefix_key_and_siblings():
    """Test that the range holds exactly the keys that strictly extend the prefix."""
    start, end = prefix_range(("person", "ssn"))

    inside = [("person", "ssn", "1"), ("person", "ssn", 5), ("person", "ssn", b""), ("person", "ssn", True)]
    outside = [("person", "ssn"), ("person", "ssnx", "1"), ("person", "ss"), ("person",), ("q",)]

    for key in inside:
        assert start <= encode_key(key) < end, key
    for key in outside:
        assert not (start <= encode_key(key) < end), key


def test_empty_prefix_range_covers_everything():
    start, end = prefix_range(())
    for key in [("a",), (b"",), (0,), (True,)]:
        assert start <= encode_key(key) < end


def test_value_roundtrip():
    value = {"name": "Alice", "age": 30, "score": 1.25, "active": True, "avatar": b"\x89PNG", "tags": ["a", "b"]}
    assert decode_value(encode_value(value)) == value


def test_value_encoding_is_canonical():
    """Test that dict insertion order does not change the encoded bytes."""
    assert encode_value({"a": 1, "b": 2}) == encode_value({"b": 2, "a": 1})


def test_unencodable_value_rejected():
    with pytest.raises(InvalidArgumentError):
        encode_value({"callback": object()})
