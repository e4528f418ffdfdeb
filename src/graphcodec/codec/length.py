"""Variable-width length codec.

Sizes, counts and ids are written as non-negative integers in 1, 3 or 5 bytes:

- ``0x00``-``0xFD``: the byte itself is the value
- ``0xFE`` followed by a little-endian uint16: values up to 65535
- ``0xFF`` followed by a little-endian uint32: values up to 4294967295

The two marker bytes are never used as literal values, so 254 and 255 always
take the three-byte form.
"""

from __future__ import annotations

import struct

SHORT_MARKER = 0xFE
LONG_MARKER = 0xFF

MAX_SINGLE_BYTE = SHORT_MARKER - 1
MAX_SHORT = 0xFFFF
MAX_LENGTH = 0xFFFFFFFF


def encode_length(value: int) -> bytes:
    """Encode a non-negative integer using the narrowest width.

    Args:
        value: Integer to encode (0 <= value <= 0xFFFFFFFF)

    Returns:
        Encoded bytes (1, 3 or 5 bytes long)

    Raises:
        ValueError: If value is negative or does not fit in 32 bits

    Example:
        >>> encode_length(5)
        b'\\x05'
        >>> encode_length(254)
        b'\\xfe\\xfe\\x00'
    """
    if value < 0:
        raise ValueError(f"Length must be non-negative, got {value}")
    if value <= MAX_SINGLE_BYTE:
        return bytes((value,))
    if value <= MAX_SHORT:
        return struct.pack("<BH", SHORT_MARKER, value)
    if value <= MAX_LENGTH:
        return struct.pack("<BI", LONG_MARKER, value)
    raise ValueError(f"Length {value} exceeds maximum {MAX_LENGTH}")


def encoded_length_size(value: int) -> int:
    """Return the number of bytes encode_length() produces for value."""
    if value < 0:
        raise ValueError(f"Length must be non-negative, got {value}")
    if value <= MAX_SINGLE_BYTE:
        return 1
    if value <= MAX_SHORT:
        return 3
    return 5


def decode_length(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a length from an in-memory buffer.

    Args:
        data: Buffer holding the encoded length
        offset: Position of the first byte

    Returns:
        Tuple of (value, number of bytes consumed)

    Raises:
        IndexError: If the buffer ends before the length is complete
    """
    if offset >= len(data):
        raise IndexError("Attempted to read length past end of buffer")

    first = data[offset]
    if first == SHORT_MARKER:
        if offset + 3 > len(data):
            raise IndexError("Truncated 16-bit length")
        return struct.unpack_from("<H", data, offset + 1)[0], 3
    if first == LONG_MARKER:
        if offset + 5 > len(data):
            raise IndexError("Truncated 32-bit length")
        return struct.unpack_from("<I", data, offset + 1)[0], 5
    return first, 1
