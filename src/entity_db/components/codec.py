"""Key and value codecs.

Keys are tuples of key parts, encoded so that comparing the encoded bytes
gives the same order as comparing the tuples part by part. Values are
encoded with canonical CBOR.

Key part encoding (type code, then payload):
    bytes   0x01  raw bytes, 0x00 escaped as 0x00 0xFF, terminated by 0x00
    str     0x02  UTF-8 bytes, escaped and terminated like bytes
    int<0   0x13  big-endian uint64 of (value + 2**64 - 1)
    int==0  0x14  no payload
    int>0   0x15  big-endian uint64
    float   0x21  IEEE 754 sortable transform (8 bytes)
    False   0x26  no payload
    True    0x27  no payload

Type order is therefore bytes < str < int < float < bool.
"""

from __future__ import annotations

import math
import struct
from typing import TYPE_CHECKING, Any

import cbor2

from ..core.errors import InvalidArgumentError, KeyEncodingError

if TYPE_CHECKING:
    from ..core.types import EncodedKey, EncodedValue, Key, KeyPart

CODE_BYTES = 0x01
CODE_STRING = 0x02
CODE_INT_NEG = 0x13
CODE_INT_ZERO = 0x14
CODE_INT_POS = 0x15
CODE_FLOAT = 0x21
CODE_FALSE = 0x26
CODE_TRUE = 0x27

INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1
_U64_OFFSET = (1 << 64) - 1


def _escape(raw: bytes) -> bytes:
    return raw.replace(b"\x00", b"\x00\xff") + b"\x00"


def _encode_part(part: KeyPart) -> bytes:
    """Encode a single key part with order preservation."""
    # bool before int: bool is a subclass of int
    if isinstance(part, bool):
        return bytes([CODE_TRUE if part else CODE_FALSE])
    if isinstance(part, (bytes, bytearray)):
        return bytes([CODE_BYTES]) + _escape(bytes(part))
    if isinstance(part, str):
        return bytes([CODE_STRING]) + _escape(part.encode("utf-8"))
    if isinstance(part, int):
        if not INT_MIN <= part <= INT_MAX:
            raise KeyEncodingError(f"Integer key part out of 64-bit range: {part}")
        if part == 0:
            return bytes([CODE_INT_ZERO])
        if part > 0:
            return bytes([CODE_INT_POS]) + struct.pack(">Q", part)
        return bytes([CODE_INT_NEG]) + struct.pack(">Q", _U64_OFFSET + part)
    if isinstance(part, float):
        if math.isnan(part):
            raise KeyEncodingError("NaN cannot be used as a key part")
        if part == 0.0:
            part = 0.0  # -0.0 and +0.0 encode the same
        bits = bytearray(struct.pack(">d", part))
        if bits[0] & 0x80:
            # Negative: flip all bits
            for i in range(8):
                bits[i] ^= 0xFF
        else:
            bits[0] ^= 0x80
        return bytes([CODE_FLOAT]) + bytes(bits)
    raise KeyEncodingError(f"Unsupported key part type: {type(part).__name__}")


def _read_escaped(data: bytes, pos: int) -> tuple[bytes, int]:
    """Read an escaped, 0x00-terminated run starting at pos."""
    out = bytearray()
    while pos < len(data):
        b = data[pos]
        if b == 0x00:
            if pos + 1 < len(data) and data[pos + 1] == 0xFF:
                out.append(0x00)
                pos += 2
                continue
            return bytes(out), pos + 1
        out.append(b)
        pos += 1
    raise KeyEncodingError("Unterminated bytes/str key part")


def _decode_part(data: bytes, pos: int) -> tuple[KeyPart, int]:
    """Decode a single key part; return (part, next_position)."""
    code = data[pos]
    if code == CODE_BYTES:
        return _read_escaped(data, pos + 1)
    if code == CODE_STRING:
        raw, pos = _read_escaped(data, pos + 1)
        return raw.decode("utf-8"), pos
    if code == CODE_INT_ZERO:
        return 0, pos + 1
    if code in (CODE_INT_POS, CODE_INT_NEG, CODE_FLOAT):
        payload = data[pos + 1 : pos + 9]
        if len(payload) < 8:
            raise KeyEncodingError(f"Truncated key part at offset {pos}")
        if code == CODE_INT_POS:
            return struct.unpack(">Q", payload)[0], pos + 9
        if code == CODE_INT_NEG:
            return struct.unpack(">Q", payload)[0] - _U64_OFFSET, pos + 9
        bits = bytearray(payload)
        if bits[0] & 0x80:
            bits[0] ^= 0x80
        else:
            for i in range(8):
                bits[i] ^= 0xFF
        return struct.unpack(">d", bytes(bits))[0], pos + 9
    if code == CODE_FALSE:
        return False, pos + 1
    if code == CODE_TRUE:
        return True, pos + 1
    raise KeyEncodingError(f"Unknown key part type code 0x{code:02x} at offset {pos}")


def encode_key(key: Key) -> EncodedKey:
    """Encode a key tuple to order-preserving bytes."""
    return b"".join(_encode_part(part) for part in key)


def decode_key(data: EncodedKey) -> Key:
    """Decode bytes produced by encode_key back to a key tuple."""
    parts = []
    pos = 0
    while pos < len(data):
        part, pos = _decode_part(data, pos)
        parts.append(part)
    return tuple(parts)


def prefix_range(prefix: Key) -> tuple[EncodedKey, EncodedKey]:
    """Return the [start, end) byte range of keys strictly extending prefix.

    Every encoded part starts with a type code between 0x01 and 0xFE, so all
    longer keys sort between prefix + 0x00 and prefix + 0xFF, and the prefix
    key itself is excluded.
    """
    encoded = encode_key(prefix)
    return encoded + b"\x00", encoded + b"\xff"


def encode_value(value: Any) -> EncodedValue:
    """Encode a stored value with canonical CBOR."""
    try:
        return cbor2.dumps(value, canonical=True)
    except cbor2.CBOREncodeError as e:
        raise InvalidArgumentError(f"Value cannot be encoded: {e}") from e


def decode_value(data: EncodedValue) -> Any:
    """Decode a value produced by encode_value."""
    return cbor2.loads(data)
