"""
Canonical binary encoding for proof messages.

Messages are serialized field by field in schema order with no tags and no
padding:

    u8/u16/u32/u64      little-endian at the declared width
    address             32 raw bytes, no length prefix
    vector<u8>          ULEB128 element count, then the raw bytes
    hash32              a byte vector that must hold exactly 32 bytes
    vector<address>     ULEB128 count of 32-byte elements, then the elements

The encoding is a pure function of the logical value, so equal messages always
produce identical bytes. Those bytes are what gets hashed and signed.
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from locproof.errors import DecodeError, EncodingError


ADDRESS_LENGTH = 32
HASH_LENGTH = 32

# Sequence lengths are capped at 2^31 - 1 elements.
MAX_SEQUENCE_LENGTH = (1 << 31) - 1

BytesLike = Union[bytes, bytearray, memoryview]


class FieldType(str, Enum):
    """Wire types understood by the encoder."""

    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    ADDRESS = "address"
    BYTES = "vector<u8>"
    HASH32 = "hash32"
    ADDRESS_VECTOR = "vector<address>"


_INT_FORMATS = {
    FieldType.U8: ("<B", 8),
    FieldType.U16: ("<H", 16),
    FieldType.U32: ("<I", 32),
    FieldType.U64: ("<Q", 64),
}


@dataclass(frozen=True)
class Field:
    """A named, typed position in a schema."""

    name: str
    type: FieldType


@dataclass(frozen=True)
class Schema:
    """
    An ordered list of fields.

    Field order is part of the wire format: reordering fields changes the
    encoding and invalidates every signature made over the old layout.
    """

    name: str
    fields: Tuple[Field, ...]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


# =============================================================================
# ULEB128
# =============================================================================


def encode_uleb128(value: int) -> bytes:
    """Encode a sequence length as unsigned LEB128."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise EncodingError(f"ULEB128 value must be a non-negative int, got {value!r}")
    if value > MAX_SEQUENCE_LENGTH:
        raise EncodingError(f"Sequence length {value} exceeds maximum {MAX_SEQUENCE_LENGTH}")

    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_uleb128(data: BytesLike, offset: int = 0) -> Tuple[int, int]:
    """
    Decode an unsigned LEB128 length starting at ``offset``.

    Returns:
        Tuple of (value, offset just past the prefix).

    Raises:
        DecodeError: If the prefix is truncated, non-minimal, or too large.
    """
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise DecodeError("Truncated ULEB128 length prefix")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            if byte == 0 and pos - offset > 1:
                raise DecodeError("Non-canonical ULEB128 length prefix")
            break
        shift += 7
        if shift > 28:
            raise DecodeError("ULEB128 length prefix is too long")

    if value > MAX_SEQUENCE_LENGTH:
        raise DecodeError(f"Sequence length {value} exceeds maximum {MAX_SEQUENCE_LENGTH}")
    return value, pos


def encode_bytes_vector(data: BytesLike) -> bytes:
    """Length-prefix a byte string (the ``vector<u8>`` encoding)."""
    raw = bytes(data)
    return encode_uleb128(len(raw)) + raw


def decode_bytes_vector(data: BytesLike, offset: int = 0) -> Tuple[bytes, int]:
    """Inverse of :func:`encode_bytes_vector`, returning (bytes, end offset)."""
    length, pos = decode_uleb128(data, offset)
    end = pos + length
    if end > len(data):
        raise DecodeError(f"Truncated byte vector: need {length} bytes, have {len(data) - pos}")
    return bytes(data[pos:end]), end


# =============================================================================
# Addresses
# =============================================================================


def normalize_address(value: Union[str, BytesLike]) -> bytes:
    """
    Normalize an address to 32 raw bytes.

    Accepts raw bytes (must be exactly 32) or a hex string with or without
    ``0x``. Short hex forms such as ``0x6`` are left-padded with zeros.

    Raises:
        EncodingError: If the value is not a valid 32-byte address.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if len(raw) != ADDRESS_LENGTH:
            raise EncodingError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
        return raw

    if isinstance(value, str):
        hex_part = value[2:] if value[:2] in ("0x", "0X") else value
        if not hex_part or len(hex_part) > ADDRESS_LENGTH * 2:
            raise EncodingError(f"Invalid address hex: {value!r}")
        try:
            return bytes.fromhex(hex_part.rjust(ADDRESS_LENGTH * 2, "0"))
        except ValueError as e:
            raise EncodingError(f"Invalid address hex: {value!r}") from e

    raise EncodingError(f"Address must be bytes or hex string, got {type(value).__name__}")


def address_to_hex(address: BytesLike) -> str:
    """Render a 32-byte address as ``0x`` followed by 64 hex digits."""
    return "0x" + bytes(address).hex()


# =============================================================================
# Encoding
# =============================================================================


def coerce_bytes(value: Any, field: Field) -> bytes:
    """Accept bytes-like values or a list of ints in 0..255 for a byte field."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (list, tuple)):
        try:
            return bytes(value)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"{field.name}: byte list contains non-u8 values") from e
    raise EncodingError(f"{field.name}: expected bytes, got {type(value).__name__}")


def _encode_field(field: Field, value: Any) -> bytes:
    ftype = field.type

    if ftype in _INT_FORMATS:
        fmt, bits = _INT_FORMATS[ftype]
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodingError(f"{field.name}: expected int, got {type(value).__name__}")
        if not 0 <= value < (1 << bits):
            raise EncodingError(f"{field.name}: {value} out of range for {ftype.value}")
        return struct.pack(fmt, value)

    if ftype is FieldType.ADDRESS:
        try:
            return normalize_address(value)
        except EncodingError as e:
            raise EncodingError(f"{field.name}: {e}") from e

    if ftype is FieldType.BYTES:
        return encode_bytes_vector(coerce_bytes(value, field))

    if ftype is FieldType.HASH32:
        raw = coerce_bytes(value, field)
        if len(raw) != HASH_LENGTH:
            raise EncodingError(f"{field.name}: hash must be {HASH_LENGTH} bytes, got {len(raw)}")
        return encode_bytes_vector(raw)

    if ftype is FieldType.ADDRESS_VECTOR:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Iterable):
            raise EncodingError(f"{field.name}: expected a sequence of addresses")
        items = list(value)
        try:
            body = b"".join(normalize_address(item) for item in items)
        except EncodingError as e:
            raise EncodingError(f"{field.name}: {e}") from e
        # Count is the number of 32-byte elements, not the byte count.
        return encode_uleb128(len(items)) + body

    raise EncodingError(f"{field.name}: unsupported field type {ftype!r}")


def _get_value(values: Any, name: str) -> Any:
    if isinstance(values, Mapping):
        if name not in values:
            raise EncodingError(f"Missing field: {name}")
        return values[name]
    if not hasattr(values, name):
        raise EncodingError(f"Missing field: {name}")
    return getattr(values, name)


def encode(schema: Schema, values: Any) -> bytes:
    """
    Encode values in schema order.

    Args:
        schema: The message schema.
        values: A mapping keyed by field name, or an object with one attribute
            per field.

    Returns:
        The canonical encoding.

    Raises:
        EncodingError: If a field is missing or malformed.
    """
    out = bytearray()
    for field in schema.fields:
        out += _encode_field(field, _get_value(values, field.name))
    return bytes(out)


# =============================================================================
# Decoding
# =============================================================================


def _take(data: BytesLike, offset: int, size: int, field: Field) -> Tuple[bytes, int]:
    end = offset + size
    if end > len(data):
        raise DecodeError(f"{field.name}: truncated input, need {size} bytes at offset {offset}")
    return bytes(data[offset:end]), end


def _decode_field(field: Field, data: BytesLike, offset: int) -> Tuple[Any, int]:
    ftype = field.type

    if ftype in _INT_FORMATS:
        fmt, bits = _INT_FORMATS[ftype]
        raw, end = _take(data, offset, bits // 8, field)
        return struct.unpack(fmt, raw)[0], end

    if ftype is FieldType.ADDRESS:
        return _take(data, offset, ADDRESS_LENGTH, field)

    if ftype is FieldType.BYTES:
        try:
            return decode_bytes_vector(data, offset)
        except DecodeError as e:
            raise DecodeError(f"{field.name}: {e}") from e

    if ftype is FieldType.HASH32:
        try:
            raw, end = decode_bytes_vector(data, offset)
        except DecodeError as e:
            raise DecodeError(f"{field.name}: {e}") from e
        if len(raw) != HASH_LENGTH:
            raise DecodeError(f"{field.name}: hash must be {HASH_LENGTH} bytes, got {len(raw)}")
        return raw, end

    if ftype is FieldType.ADDRESS_VECTOR:
        count, pos = decode_uleb128(data, offset)
        items = []
        for _ in range(count):
            item, pos = _take(data, pos, ADDRESS_LENGTH, field)
            items.append(item)
        return tuple(items), pos

    raise DecodeError(f"{field.name}: unsupported field type {ftype!r}")


def decode_prefix(data: BytesLike, schema: Schema, offset: int = 0) -> Tuple[Dict[str, Any], int]:
    """
    Decode one message from the front of ``data`` starting at ``offset``.

    Schemas are self-delimiting, so the returned end offset tells the caller
    where the message stops and whatever follows begins.

    Returns:
        Tuple of (field values in schema order, end offset).

    Raises:
        DecodeError: If the input is truncated or a length prefix is malformed.
    """
    values: Dict[str, Any] = {}
    pos = offset
    for field in schema.fields:
        values[field.name], pos = _decode_field(field, data, pos)
    return values, pos


def decode(data: BytesLike, schema: Schema) -> Dict[str, Any]:
    """
    Decode exactly one message; trailing bytes are an error.

    Raises:
        DecodeError: On truncated input, malformed prefixes or trailing bytes.
    """
    values, end = decode_prefix(data, schema)
    if end != len(data):
        raise DecodeError(f"{schema.name}: {len(data) - end} trailing bytes after message")
    return values
