"""Wire tags and type classification.

Every encoded value starts with one tag byte describing its shape. This module
defines the tag enumeration, maps Python types to tags, and maps scalar tags
back to the element types used by the compact array encodings.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta
from decimal import Decimal

from ..arrays import Array
from ..exceptions import UnsupportedTypeError
from ..models.scalars import (
    Char,
    Float32,
    Int8,
    Int16,
    Int32,
    Int64,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)


class Tag(enum.IntEnum):
    """One-byte shape discriminant."""

    NULL = 0x00
    ARRAY = 0x01
    OBJECT = 0x02
    OBJECT_REF = 0x03
    BOOLEAN = 0x10
    BYTE = 0x11
    SBYTE = 0x12
    CHAR = 0x13
    SINGLE = 0x14
    DOUBLE = 0x15
    INT16 = 0x16
    INT32 = 0x17
    INT64 = 0x18
    UINT16 = 0x19
    UINT32 = 0x1A
    UINT64 = 0x1B
    DATETIME = 0x20
    TIMESPAN = 0x21
    DECIMAL = 0x30
    STRING = 0x40
    EMPTY_STRING = 0x41
    BYTE_ARRAY = 0x50
    EMPTY_ARRAY = 0x51
    UNARY_ARRAY = 0x52
    EMPTY_POD_ARRAY = 0x53
    UNARY_POD_ARRAY = 0x54
    SINGLE_ARRAY = 0x55
    SINGLE_POD_ARRAY = 0x56
    ENUM = 0x60
    NULLABLE = 0x61


# Exact type -> tag; subclasses are deliberately not matched
_SCALAR_TAGS: dict[type, Tag] = {
    bool: Tag.BOOLEAN,
    UInt8: Tag.BYTE,
    Int8: Tag.SBYTE,
    Char: Tag.CHAR,
    Float32: Tag.SINGLE,
    float: Tag.DOUBLE,
    Int16: Tag.INT16,
    Int32: Tag.INT32,
    Int64: Tag.INT64,
    int: Tag.INT64,
    UInt16: Tag.UINT16,
    UInt32: Tag.UINT32,
    UInt64: Tag.UINT64,
    datetime: Tag.DATETIME,
    timedelta: Tag.TIMESPAN,
    Decimal: Tag.DECIMAL,
    str: Tag.STRING,
}

_POD_TYPES: dict[Tag, type] = {
    Tag.BOOLEAN: bool,
    Tag.BYTE: UInt8,
    Tag.SBYTE: Int8,
    Tag.CHAR: Char,
    Tag.SINGLE: Float32,
    Tag.DOUBLE: float,
    Tag.INT16: Int16,
    Tag.INT32: Int32,
    Tag.INT64: Int64,
    Tag.UINT16: UInt16,
    Tag.UINT32: UInt32,
    Tag.UINT64: UInt64,
    Tag.DATETIME: datetime,
    Tag.TIMESPAN: timedelta,
    Tag.DECIMAL: Decimal,
    Tag.STRING: str,
}

_ARRAY_TYPES = (Array, list, bytes, bytearray)
_PRIMITIVES = (int, float, complex, str, bytes)

SCALAR_TAGS = frozenset(_POD_TYPES)


def classify(tp: type) -> Tag:
    """Map a Python type to the tag its values are written with.

    Order matters: enums first, then arrays, then exact scalar types, then
    everything else is a structural object. Subclasses of Python primitives
    that are not one of the known scalar types cannot be classified.

    Args:
        tp: Runtime type of a value

    Returns:
        The tag for the type (ENUM, ARRAY, OBJECT or a scalar tag)

    Raises:
        UnsupportedTypeError: If tp is an unknown primitive subclass

    Example:
        >>> classify(Int32)
        <Tag.INT32: 23>
        >>> classify(list)
        <Tag.ARRAY: 1>
    """
    if issubclass(tp, enum.Enum):
        return Tag.ENUM
    if issubclass(tp, _ARRAY_TYPES):
        return Tag.ARRAY
    tag = _SCALAR_TAGS.get(tp)
    if tag is not None:
        return tag
    if issubclass(tp, _PRIMITIVES):
        raise UnsupportedTypeError(f"Cannot classify primitive type {tp.__qualname__}")
    return Tag.OBJECT


def pod_kind(tag: Tag | int) -> type | None:
    """Return the element type for a scalar or string tag, else None.

    Example:
        >>> pod_kind(Tag.INT32)
        <class 'graphcodec.models.scalars.Int32'>
        >>> pod_kind(Tag.OBJECT) is None
        True
    """
    return _POD_TYPES.get(tag)  # type: ignore[call-overload]


def is_pod_type(tp: type) -> bool:
    """True if arrays of tp use the element-kind encodings."""
    return tp in _SCALAR_TAGS


def tag_for_pod(tp: type) -> Tag:
    """Return the scalar tag for a POD element type.

    Raises:
        UnsupportedTypeError: If tp is not a POD type
    """
    tag = _SCALAR_TAGS.get(tp)
    if tag is None:
        raise UnsupportedTypeError(f"{tp.__qualname__} is not a plain data type")
    return tag
