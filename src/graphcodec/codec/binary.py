"""Byte-level reading and writing on binary streams.

This module provides the low-level primitives the codec is built on: fixed-width
integers and floats, UTF-8 characters, lengths, and the date/time/decimal
layouts. All multi-byte values are little-endian.
"""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import BinaryIO

from .length import LONG_MARKER, SHORT_MARKER, encode_length

# Tick based date/time layout: 100ns units since 0001-01-01T00:00:00
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MICROSECOND = 10
EPOCH = datetime(1, 1, 1)

DATETIME_KIND_UNSPECIFIED = 0
DATETIME_KIND_UTC = 1
_KIND_SHIFT = 62
_TICKS_MASK = (1 << _KIND_SHIFT) - 1

MAX_DECIMAL_SCALE = 28
_DECIMAL_SIGN = 0x80000000

_UINT_FORMATS = {1: "<B", 2: "<H", 4: "<I", 8: "<Q"}
_INT_FORMATS = {1: "<b", 2: "<h", 4: "<i", 8: "<q"}


def timedelta_to_ticks(value: timedelta) -> int:
    """Convert a timedelta to 100ns ticks."""
    seconds = value.days * 86400 + value.seconds
    return seconds * TICKS_PER_SECOND + value.microseconds * TICKS_PER_MICROSECOND


def ticks_to_timedelta(ticks: int) -> timedelta:
    """Convert 100ns ticks to a timedelta (sub-microsecond ticks are dropped)."""
    return timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)


class BinaryWriter:
    """Writes primitive values to a binary stream.

    Example:
        >>> buffer = io.BytesIO()
        >>> writer = BinaryWriter(buffer)
        >>> writer.write_byte(0x17)
        >>> writer.write_int(42, 4)
        >>> buffer.getvalue()
        b'\\x17*\\x00\\x00\\x00'
    """

    def __init__(self, stream: BinaryIO) -> None:
        """Initialize a writer on the given stream.

        Args:
            stream: Writable binary stream
        """
        self._stream = stream
        self._written = 0

    @property
    def bytes_written(self) -> int:
        """Number of bytes written through this writer."""
        return self._written

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes."""
        self._stream.write(data)
        self._written += len(data)

    def write_byte(self, value: int) -> None:
        """Write a single unsigned byte.

        Raises:
            ValueError: If value is outside 0-255
        """
        if value < 0 or value > 0xFF:
            raise ValueError(f"Byte value must be 0-255, got {value}")
        self.write_bytes(bytes((value,)))

    def write_bool(self, value: bool) -> None:
        """Write a boolean as one byte (0 or 1)."""
        self.write_byte(1 if value else 0)

    def write_uint(self, value: int, size: int) -> None:
        """Write an unsigned integer of 1, 2, 4 or 8 bytes.

        Raises:
            ValueError: If size is unsupported or value does not fit
        """
        fmt = _UINT_FORMATS.get(size)
        if fmt is None:
            raise ValueError(f"Unsupported integer size {size}")
        try:
            self.write_bytes(struct.pack(fmt, value))
        except struct.error as err:
            raise ValueError(f"Value {value} does not fit in {size} unsigned bytes") from err

    def write_int(self, value: int, size: int) -> None:
        """Write a signed two's complement integer of 1, 2, 4 or 8 bytes.

        Raises:
            ValueError: If size is unsupported or value does not fit
        """
        fmt = _INT_FORMATS.get(size)
        if fmt is None:
            raise ValueError(f"Unsupported integer size {size}")
        try:
            self.write_bytes(struct.pack(fmt, value))
        except struct.error as err:
            raise ValueError(f"Value {value} does not fit in {size} signed bytes") from err

    def write_float32(self, value: float) -> None:
        """Write an IEEE 754 single-precision float."""
        try:
            self.write_bytes(struct.pack("<f", value))
        except (struct.error, OverflowError) as err:
            raise ValueError(f"Value {value!r} does not fit in a single-precision float") from err

    def write_float64(self, value: float) -> None:
        """Write an IEEE 754 double-precision float."""
        self.write_bytes(struct.pack("<d", value))

    def write_char(self, value: str) -> None:
        """Write one character as its UTF-8 encoding (1-4 bytes)."""
        if len(value) != 1:
            raise ValueError(f"Expected a single character, got {value!r}")
        self.write_bytes(value.encode("utf-8"))

    def write_length(self, value: int) -> None:
        """Write a non-negative integer with the variable-width length codec."""
        self.write_bytes(encode_length(value))

    def write_datetime(self, value: datetime) -> None:
        """Write a datetime as 64-bit ticks with the kind in the top two bits.

        Naive datetimes are written as-is with kind "unspecified". Aware
        datetimes are converted to UTC and written with kind "UTC".
        """
        kind = DATETIME_KIND_UNSPECIFIED
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
            kind = DATETIME_KIND_UTC
        ticks = timedelta_to_ticks(value - EPOCH)
        self.write_int(ticks | (kind << _KIND_SHIFT), 8)

    def write_timedelta(self, value: timedelta) -> None:
        """Write a timedelta as signed 64-bit ticks."""
        self.write_int(timedelta_to_ticks(value), 8)

    def write_decimal(self, value: Decimal) -> None:
        """Write a Decimal as a 96-bit mantissa plus scale and sign flags.

        Layout: lo, mid, hi (mantissa words) and flags, each a uint32.
        Flags hold the scale (0-28) in bits 16-23 and the sign in bit 31.

        Raises:
            ValueError: If the value is not finite or does not fit in 96 bits
        """
        if not value.is_finite():
            raise ValueError(f"Cannot encode non-finite Decimal {value}")

        sign, digits, exponent = value.as_tuple()
        mantissa = int("".join(str(d) for d in digits)) if digits else 0
        if exponent > 0:
            mantissa *= 10**exponent
            scale = 0
        else:
            scale = -exponent

        # Drop trailing zeros that push the scale out of range
        while scale > MAX_DECIMAL_SCALE and mantissa % 10 == 0:
            mantissa //= 10
            scale -= 1

        if scale > MAX_DECIMAL_SCALE:
            raise ValueError(f"Decimal {value} has scale {scale} (max {MAX_DECIMAL_SCALE})")
        if mantissa >= 1 << 96:
            raise ValueError(f"Decimal {value} does not fit in 96 bits")

        flags = (scale << 16) | (_DECIMAL_SIGN if sign else 0)
        self.write_bytes(
            struct.pack(
                "<IIII",
                mantissa & 0xFFFFFFFF,
                (mantissa >> 32) & 0xFFFFFFFF,
                (mantissa >> 64) & 0xFFFFFFFF,
                flags,
            )
        )


class BinaryReader:
    """Reads primitive values from a binary stream.

    Every read either returns a complete value or raises EOFError; a short
    read is never silently padded.

    Example:
        >>> reader = BinaryReader(io.BytesIO(b"\\x17*\\x00\\x00\\x00"))
        >>> reader.read_byte()
        23
        >>> reader.read_int(4)
        42
    """

    def __init__(self, stream: BinaryIO) -> None:
        """Initialize a reader on the given stream.

        Args:
            stream: Readable binary stream
        """
        self._stream = stream
        self._read = 0

    @property
    def bytes_read(self) -> int:
        """Number of bytes consumed through this reader."""
        return self._read

    def read_bytes(self, count: int) -> bytes:
        """Read exactly count bytes.

        Raises:
            EOFError: If the stream ends first
        """
        if count == 0:
            return b""
        chunks = []
        remaining = count
        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                raise EOFError(f"Not enough bytes: need {count}, have {count - remaining}")
            chunks.append(chunk)
            remaining -= len(chunk)
        self._read += count
        return chunks[0] if len(chunks) == 1 else b"".join(chunks)

    def read_byte(self) -> int:
        """Read a single unsigned byte."""
        return self.read_bytes(1)[0]

    def read_bool(self) -> bool:
        """Read a boolean byte; any non-zero value is True."""
        return self.read_byte() != 0

    def read_uint(self, size: int) -> int:
        """Read an unsigned integer of 1, 2, 4 or 8 bytes."""
        fmt = _UINT_FORMATS.get(size)
        if fmt is None:
            raise ValueError(f"Unsupported integer size {size}")
        return struct.unpack(fmt, self.read_bytes(size))[0]

    def read_int(self, size: int) -> int:
        """Read a signed integer of 1, 2, 4 or 8 bytes."""
        fmt = _INT_FORMATS.get(size)
        if fmt is None:
            raise ValueError(f"Unsupported integer size {size}")
        return struct.unpack(fmt, self.read_bytes(size))[0]

    def read_float32(self) -> float:
        return struct.unpack("<f", self.read_bytes(4))[0]

    def read_float64(self) -> float:
        return struct.unpack("<d", self.read_bytes(8))[0]

    def read_char(self) -> str:
        """Read one UTF-8 encoded character.

        Raises:
            ValueError: If the lead byte is not a valid UTF-8 lead byte
            UnicodeDecodeError: If the continuation bytes are invalid
        """
        lead = self.read_byte()
        if lead < 0x80:
            return chr(lead)
        if lead >> 5 == 0b110:
            extra = 1
        elif lead >> 4 == 0b1110:
            extra = 2
        elif lead >> 3 == 0b11110:
            extra = 3
        else:
            raise ValueError(f"Invalid UTF-8 lead byte 0x{lead:02x}")
        return (bytes((lead,)) + self.read_bytes(extra)).decode("utf-8")

    def read_length(self) -> int:
        """Read a value written with the variable-width length codec."""
        first = self.read_byte()
        if first == SHORT_MARKER:
            return self.read_uint(2)
        if first == LONG_MARKER:
            return self.read_uint(4)
        return first

    def read_datetime(self) -> datetime:
        """Read a datetime written by BinaryWriter.write_datetime().

        Raises:
            ValueError: If the kind bits are not a known kind
        """
        raw = self.read_int(8)
        kind = (raw >> _KIND_SHIFT) & 0b11
        ticks = raw & _TICKS_MASK
        value = EPOCH + ticks_to_timedelta(ticks)
        if kind == DATETIME_KIND_UTC:
            return value.replace(tzinfo=timezone.utc)
        if kind != DATETIME_KIND_UNSPECIFIED:
            raise ValueError(f"Unsupported datetime kind {kind}")
        return value

    def read_timedelta(self) -> timedelta:
        return ticks_to_timedelta(self.read_int(8))

    def read_decimal(self) -> Decimal:
        """Read a Decimal written by BinaryWriter.write_decimal().

        Raises:
            ValueError: If the scale is out of range
        """
        lo, mid, hi, flags = struct.unpack("<IIII", self.read_bytes(16))
        scale = (flags >> 16) & 0xFF
        if scale > MAX_DECIMAL_SCALE:
            raise ValueError(f"Decimal scale {scale} out of range")
        mantissa = lo | (mid << 32) | (hi << 64)
        sign = 1 if flags & _DECIMAL_SIGN else 0
        digits = tuple(int(d) for d in str(mantissa))
        return Decimal((sign, digits, -scale))
