"""Tests for wire tags and type classification."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from graphcodec import Array, Tag, UnsupportedTypeError, classify, pod_kind
from graphcodec.codec.tags import SCALAR_TAGS, is_pod_type, tag_for_pod
from graphcodec.models.scalars import (
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


class Shade(enum.IntEnum):
    LIGHT = 1


@dataclass
class Plain:
    value: int = 0


class TestTagValues:
    """Test the numeric tag assignments."""

    def test_structural_tags(self) -> None:
        """Test the structural tag bytes."""
        assert Tag.NULL == 0x00
        assert Tag.ARRAY == 0x01
        assert Tag.OBJECT == 0x02
        assert Tag.OBJECT_REF == 0x03

    def test_compact_array_tags(self) -> None:
        """Test the compact array tag bytes."""
        assert Tag.BYTE_ARRAY == 0x50
        assert Tag.EMPTY_ARRAY == 0x51
        assert Tag.UNARY_ARRAY == 0x52
        assert Tag.EMPTY_POD_ARRAY == 0x53
        assert Tag.UNARY_POD_ARRAY == 0x54
        assert Tag.SINGLE_ARRAY == 0x55
        assert Tag.SINGLE_POD_ARRAY == 0x56

    def test_tags_fit_one_byte(self) -> None:
        """Test that every tag is a distinct byte."""
        values = [tag.value for tag in Tag]
        assert len(values) == len(set(values))
        assert all(0 <= value <= 0xFF for value in values)


class TestClassify:
    """Test classify()."""

    @pytest.mark.parametrize(
        "tp,expected",
        [
            (bool, Tag.BOOLEAN),
            (UInt8, Tag.BYTE),
            (Int8, Tag.SBYTE),
            (Char, Tag.CHAR),
            (Float32, Tag.SINGLE),
            (float, Tag.DOUBLE),
            (Int16, Tag.INT16),
            (Int32, Tag.INT32),
            (Int64, Tag.INT64),
            (int, Tag.INT64),
            (UInt16, Tag.UINT16),
            (UInt32, Tag.UINT32),
            (UInt64, Tag.UINT64),
            (datetime, Tag.DATETIME),
            (timedelta, Tag.TIMESPAN),
            (Decimal, Tag.DECIMAL),
            (str, Tag.STRING),
        ],
    )
    def test_scalars(self, tp: type, expected: Tag) -> None:
        """Test exact scalar types."""
        assert classify(tp) is expected

    def test_enum_before_integer(self) -> None:
        """Test that an IntEnum is an enum, not an integer."""
        assert classify(Shade) is Tag.ENUM

    @pytest.mark.parametrize("tp", [list, bytes, bytearray, Array])
    def test_arrays(self, tp: type) -> None:
        """Test array-like types."""
        assert classify(tp) is Tag.ARRAY

    @pytest.mark.parametrize("tp", [object, dict, set, Plain])
    def test_objects(self, tp: type) -> None:
        """Test that everything else is a structural object."""
        assert classify(tp) is Tag.OBJECT

    def test_unknown_primitive_subclass(self) -> None:
        """Test that user subclasses of primitives are rejected."""

        class Name(str):
            pass

        with pytest.raises(UnsupportedTypeError):
            classify(Name)

        with pytest.raises(UnsupportedTypeError):
            classify(complex)

    def test_unsupported_is_type_error(self) -> None:
        """Test that UnsupportedTypeError is also a TypeError."""
        with pytest.raises(TypeError):
            classify(complex)


class TestPodKinds:
    """Test the element kind mapping of compact arrays."""

    def test_pod_kind(self) -> None:
        """Test scalar tags map to element types."""
        assert pod_kind(Tag.INT32) is Int32
        assert pod_kind(Tag.STRING) is str
        assert pod_kind(int(Tag.BYTE)) is UInt8

    @pytest.mark.parametrize("tag", [Tag.OBJECT, Tag.ARRAY, Tag.EMPTY_ARRAY, Tag.NULL])
    def test_non_scalar_tags(self, tag: Tag) -> None:
        """Test that structural tags have no element kind."""
        assert pod_kind(tag) is None

    def test_kind_tag_inverse(self) -> None:
        """Test that tag_for_pod inverts pod_kind."""
        for tag in SCALAR_TAGS:
            assert tag_for_pod(pod_kind(tag)) is tag

    def test_is_pod_type(self) -> None:
        """Test plain data detection."""
        assert is_pod_type(Int16)
        assert is_pod_type(str)
        assert not is_pod_type(object)
        assert not is_pod_type(Plain)

    def test_tag_for_non_pod(self) -> None:
        """Test that structural types have no scalar tag."""
        with pytest.raises(UnsupportedTypeError):
            tag_for_pod(Plain)
