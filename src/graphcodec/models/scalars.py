"""Fixed-width scalar types.

Python has a single unbounded ``int`` and a single double-precision ``float``.
The wire format distinguishes integer widths and signedness, single and double
floats, and single characters, so this module provides thin subclasses that
carry that information:

    >>> from graphcodec.models.scalars import Int32, UInt8, Float32, Char
    >>> Int32(7) + 1
    8
    >>> UInt8(300)
    Traceback (most recent call last):
        ...
    ValueError: UInt8 requires 0 <= value <= 255, got 300

Instances compare equal to the plain values they wrap, so a decoded ``Int32(1)``
equals ``1``.
"""

from __future__ import annotations

import struct
from typing import Any, ClassVar


class FixedInt(int):
    """Base class for fixed-width integers.

    Subclasses set ``bits`` and ``signed``; the constructor rejects values
    outside the representable range.
    """

    bits: ClassVar[int] = 64
    signed: ClassVar[bool] = True
    struct_format: ClassVar[str] = "<q"

    def __new__(cls, value: Any = 0) -> FixedInt:
        number = int(value)
        low, high = cls.bounds()
        if number < low or number > high:
            raise ValueError(f"{cls.__name__} requires {low} <= value <= {high}, got {number}")
        return super().__new__(cls, number)

    @classmethod
    def bounds(cls) -> tuple[int, int]:
        """Return the inclusive (min, max) range of the type."""
        if cls.signed:
            return -(1 << (cls.bits - 1)), (1 << (cls.bits - 1)) - 1
        return 0, (1 << cls.bits) - 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class Int8(FixedInt):
    bits = 8
    signed = True
    struct_format = "<b"


class UInt8(FixedInt):
    bits = 8
    signed = False
    struct_format = "<B"


class Int16(FixedInt):
    bits = 16
    signed = True
    struct_format = "<h"


class UInt16(FixedInt):
    bits = 16
    signed = False
    struct_format = "<H"


class Int32(FixedInt):
    bits = 32
    signed = True
    struct_format = "<i"


class UInt32(FixedInt):
    bits = 32
    signed = False
    struct_format = "<I"


class Int64(FixedInt):
    bits = 64
    signed = True
    struct_format = "<q"


class UInt64(FixedInt):
    bits = 64
    signed = False
    struct_format = "<Q"


class Float32(float):
    """Single-precision float.

    The value is rounded to single precision on construction, so a Float32
    compares equal to its decoded counterpart.
    """

    def __new__(cls, value: Any = 0.0) -> Float32:
        try:
            rounded = struct.unpack("<f", struct.pack("<f", float(value)))[0]
        except OverflowError as err:
            raise ValueError(f"Float32 cannot represent {value!r}") from err
        return super().__new__(cls, rounded)

    def __repr__(self) -> str:
        return f"Float32({float(self)!r})"


class Char(str):
    """A single Unicode character."""

    def __new__(cls, value: Any = "\0") -> Char:
        text = str(value)
        if len(text) != 1:
            raise ValueError(f"Char requires exactly one character, got {text!r}")
        return super().__new__(cls, text)

    def __repr__(self) -> str:
        return f"Char({str(self)!r})"


INTEGER_TYPES: tuple[type[FixedInt], ...] = (
    Int8,
    UInt8,
    Int16,
    UInt16,
    Int32,
    UInt32,
    Int64,
    UInt64,
)
