"""Recursive object graph decoder.

This module provides the Decoder class, which reads tagged values written by
the Encoder and rebuilds the object graph. Structural objects are allocated
and bound to their id before their fields are read, so fields that point back
to an object under construction resolve to that same instance.
"""

from __future__ import annotations

import enum
import math
import struct
from typing import Any

from ..arrays import Array
from ..catalog import TypeCatalog
from ..config import DEFAULT_CONFIG, CodecConfig
from ..exceptions import (
    GraphCodecError,
    MalformedStreamError,
    MissingFieldError,
    UnsupportedShapeError,
    UnsupportedTypeError,
)
from ..models.scalars import Char, Float32, UInt8
from .binary import BinaryReader
from .cache import Cache
from .tags import SCALAR_TAGS, Tag, classify, pod_kind

# Scalar tag -> (size in bytes, signed)
_INTEGER_LAYOUT: dict[Tag, tuple[int, bool]] = {
    Tag.BYTE: (1, False),
    Tag.SBYTE: (1, True),
    Tag.INT16: (2, True),
    Tag.INT32: (4, True),
    Tag.INT64: (8, True),
    Tag.UINT16: (2, False),
    Tag.UINT32: (4, False),
    Tag.UINT64: (8, False),
}

_VECTOR_TAGS = frozenset(
    {
        Tag.EMPTY_ARRAY,
        Tag.SINGLE_ARRAY,
        Tag.UNARY_ARRAY,
        Tag.EMPTY_POD_ARRAY,
        Tag.SINGLE_POD_ARRAY,
        Tag.UNARY_POD_ARRAY,
    }
)


class Decoder:
    """Reads one value graph from a BinaryReader.

    A Decoder is bound to the Cache of a single top-level call and must not
    be reused across calls.
    """

    def __init__(
        self,
        reader: BinaryReader,
        cache: Cache,
        catalog: TypeCatalog,
        config: CodecConfig = DEFAULT_CONFIG,
    ) -> None:
        self._reader = reader
        self._cache = cache
        self._catalog = catalog
        self._config = config
        self._depth = 0

    def read_root(self) -> Any:
        """Read one top-level value, translating low-level failures.

        Raises:
            MalformedStreamError: If the data is truncated or corrupted
            MissingFieldError: If an object lacks a required member
            UnresolvableTypeError: If a type name is unknown
            UnsupportedShapeError: If an object record names a non-object type
        """
        try:
            return self.read()
        except GraphCodecError:
            raise
        except RecursionError as err:
            raise MalformedStreamError(f"Data nests too deeply to decode: {err}") from err
        except EOFError as err:
            raise MalformedStreamError(f"Truncated data: {err}") from err
        except (ValueError, OverflowError, struct.error) as err:
            raise MalformedStreamError(f"Corrupted data: {err}") from err

    def read(self) -> Any:
        """Read the next value and everything it references.

        Raises:
            MalformedStreamError: If the value nests deeper than the configured
                max_depth
        """
        self._depth += 1
        try:
            if self._depth > self._config.max_depth:
                raise MalformedStreamError(
                    f"Value nesting exceeds configured max_depth={self._config.max_depth}"
                )
            return self._read_tagged(self._read_tag())
        finally:
            self._depth -= 1

    def _read_tag(self) -> Tag:
        raw = self._reader.read_byte()
        try:
            return Tag(raw)
        except ValueError:
            raise MalformedStreamError(f"Unknown tag byte 0x{raw:02x}") from None

    def _read_tagged(self, tag: Tag) -> Any:
        if tag is Tag.NULL:
            return None
        if tag in SCALAR_TAGS:
            return self._read_scalar(tag)
        if tag is Tag.EMPTY_STRING:
            return ""
        if tag is Tag.OBJECT:
            return self._read_object()
        if tag is Tag.OBJECT_REF:
            return self._cache.resolve_ref(self._read_length())
        if tag is Tag.BYTE_ARRAY:
            return self._reader.read_bytes(self._read_length())
        if tag in _VECTOR_TAGS:
            return self._read_vector(tag)
        if tag is Tag.ARRAY:
            return self._read_general_array()
        if tag is Tag.ENUM:
            return self._read_enum()
        if tag is Tag.NULLABLE:
            return self._read_nullable()
        raise MalformedStreamError(f"Tag {tag.name} cannot start a value")

    def _read_length(self) -> int:
        value = self._reader.read_length()
        if value > self._config.max_length:
            raise MalformedStreamError(
                f"Length {value} exceeds configured max_length={self._config.max_length}"
            )
        return value

    def _read_string_payload(self) -> str:
        payload = self._reader.read_bytes(self._read_length())
        errors = "strict" if self._config.strict_utf8 else "replace"
        try:
            return payload.decode("utf-8", errors)
        except UnicodeDecodeError as err:
            raise MalformedStreamError(f"Invalid UTF-8 encoding: {err}") from err

    def _read_interned(self) -> str:
        atom = self._read_length()
        return self._cache.resolve_string(atom, self._read_string_payload)

    def _read_type(self) -> type:
        namespace = self._read_interned()
        name = self._read_interned()
        return self._catalog.resolve(namespace, name)

    def _read_kind(self) -> type:
        raw = self._reader.read_byte()
        kind = pod_kind(raw)
        if kind is None:
            raise MalformedStreamError(f"Byte 0x{raw:02x} is not a plain data element kind")
        return kind

    def _read_scalar(self, tag: Tag) -> Any:
        reader = self._reader
        kind = pod_kind(tag)
        if tag in _INTEGER_LAYOUT:
            size, signed = _INTEGER_LAYOUT[tag]
            value = reader.read_int(size) if signed else reader.read_uint(size)
            return kind(value)  # type: ignore[misc]
        if tag is Tag.STRING:
            return self._read_interned()
        if tag is Tag.BOOLEAN:
            return reader.read_bool()
        if tag is Tag.DOUBLE:
            return reader.read_float64()
        if tag is Tag.SINGLE:
            return Float32(reader.read_float32())
        if tag is Tag.CHAR:
            return Char(reader.read_char())
        if tag is Tag.DATETIME:
            return reader.read_datetime()
        if tag is Tag.TIMESPAN:
            return reader.read_timedelta()
        if tag is Tag.DECIMAL:
            return reader.read_decimal()
        raise MalformedStreamError(f"No scalar decoding for tag {tag.name}")

    def _read_object(self) -> Any:
        catalog = self._catalog
        cls = self._read_type()
        try:
            shape = classify(cls)
        except UnsupportedTypeError as err:
            raise UnsupportedShapeError(str(err)) from err
        if shape is not Tag.OBJECT:
            raise UnsupportedShapeError(
                f"{cls.__qualname__} is a {shape.name.lower()} type, not an object"
            )

        oid = self._read_length()
        if catalog.is_constructed(cls):
            # Immutable: the instance only exists once its fields are read
            fields = self._read_fields()
            try:
                obj = catalog.construct(cls, fields, self._cache.context)
            except TypeError as err:
                raise MalformedStreamError(
                    f"Cannot build {cls.__qualname__} from its fields: {err}"
                ) from err
            self._cache.bind_ref(oid, obj)
            return obj

        obj = catalog.allocate(cls)
        self._cache.bind_ref(oid, obj)
        fields = self._read_fields()

        if catalog.is_self_describing(cls):
            catalog.restore_fields(obj, fields, self._cache.context)
            return obj

        for member in catalog.members_of(cls):
            if member.name not in fields and not member.optional:
                raise MissingFieldError(catalog.info(cls).qualified_name, member.name)
        catalog.populate(obj, fields)
        return obj

    def _read_fields(self) -> dict[str, Any]:
        count = self._read_length()
        fields: dict[str, Any] = {}
        for _ in range(count):
            name = self._read_interned()
            fields[name] = self.read()
        return fields

    def _read_enum(self) -> Any:
        cls = self._read_type()
        if not issubclass(cls, enum.Enum):
            raise UnsupportedShapeError(f"{cls.__qualname__} is not an enum")
        underlying = self._catalog.underlying_of(cls)
        size = underlying.bits // 8
        if underlying.signed:
            raw = self._reader.read_int(size)
        else:
            raw = self._reader.read_uint(size)
        try:
            return cls(raw)
        except ValueError as err:
            raise MalformedStreamError(f"{raw} is not a member of {cls.__qualname__}") from err

    def _read_nullable(self) -> Any:
        flag = self._reader.read_byte()
        if flag == 0:
            return None
        if flag != 1:
            raise MalformedStreamError(f"Invalid nullable presence flag {flag}")
        # The payload sits at the depth of its wrapper
        tag = self._read_tag()
        if tag is Tag.NULLABLE:
            raise MalformedStreamError("Nullable value wraps another nullable value")
        return self._read_tagged(tag)

    def _read_vector(self, tag: Tag) -> Any:
        if tag in (Tag.EMPTY_POD_ARRAY, Tag.SINGLE_POD_ARRAY, Tag.UNARY_POD_ARRAY):
            element_type = self._read_kind()
        else:
            element_type = self._read_type()

        if tag in (Tag.EMPTY_ARRAY, Tag.EMPTY_POD_ARRAY):
            count = 0
        elif tag in (Tag.SINGLE_ARRAY, Tag.SINGLE_POD_ARRAY):
            count = 1
        else:
            count = self._read_length()

        items = [self.read() for _ in range(count)]

        if element_type is object:
            return items
        try:
            if element_type is UInt8:
                return bytes(items)
            return Array(element_type, (count,), values=items)
        except (TypeError, ValueError) as err:
            raise MalformedStreamError(
                f"Elements do not match array kind {element_type.__name__}: {err}"
            ) from err

    def _read_general_array(self) -> Array:
        element_type = self._read_type()
        rank = self._read_length()
        if rank == 0 or rank > self._config.max_rank:
            raise MalformedStreamError(
                f"Array rank {rank} outside 1-{self._config.max_rank}"
            )

        lower_bounds = []
        lengths = []
        for _ in range(rank):
            lower_bounds.append(self._reader.read_int(4))
            length = self._reader.read_int(4)
            if length < 0:
                raise MalformedStreamError(f"Negative array length {length}")
            lengths.append(length)
        if math.prod(lengths) > self._config.max_length:
            raise MalformedStreamError(
                f"Array of shape {tuple(lengths)} exceeds max_length={self._config.max_length}"
            )

        array = Array(element_type, lengths, lower_bounds)
        for index in array.indices():
            value = self.read()
            try:
                array[index] = value
            except (TypeError, ValueError) as err:
                raise MalformedStreamError(
                    f"Element {value!r} does not match array kind {element_type.__name__}"
                ) from err
        return array
