"""Recursive object graph encoder.

This module provides the Encoder class, which walks an object graph once and
writes it as tagged values. Structural objects receive an id before their
fields are written, so a field that points back to an object already on the
way down is written as a short reference instead of being walked again.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..arrays import Array
from ..catalog import TypeCatalog
from ..config import DEFAULT_CONFIG, CodecConfig
from ..exceptions import EncodeError
from ..models.scalars import Char, FixedInt, Float32, UInt8
from .binary import BinaryWriter
from .cache import Cache
from .tags import Tag, classify, is_pod_type, tag_for_pod

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

_NUMERIC_KINDS = (FixedInt, Float32, Char, float)


class Encoder:
    """Writes one value graph to a BinaryWriter.

    An Encoder is bound to the Cache of a single top-level call and must not
    be reused across calls.

    Example:
        >>> with Cache() as cache:
        ...     Encoder(BinaryWriter(buffer), cache, default_catalog).write_root(["a", "a"])
    """

    def __init__(
        self,
        writer: BinaryWriter,
        cache: Cache,
        catalog: TypeCatalog,
        config: CodecConfig = DEFAULT_CONFIG,
    ) -> None:
        self._writer = writer
        self._cache = cache
        self._catalog = catalog
        self._config = config
        self._depth = 0
        # Ids of constructed objects whose fields are still being written
        self._unfinished: set[int] = set()

    def write_root(self, value: Any) -> None:
        """Write one top-level value, translating interpreter stack overflows.

        Raises:
            SchemaError: If a structural type is not registered
            UnsupportedTypeError: If a value's type cannot be classified
            EncodeError: If a value does not fit its wire representation or
                the graph nests too deeply
        """
        try:
            self.write(value)
        except RecursionError as err:
            raise EncodeError(f"Value graph nests too deeply to encode: {err}") from err

    def write(self, value: Any) -> None:
        """Write value and everything reachable from it.

        Raises:
            SchemaError: If a structural type is not registered
            UnsupportedTypeError: If a value's type cannot be classified
            EncodeError: If a value does not fit its wire representation or
                nests deeper than the configured max_depth
        """
        self._depth += 1
        try:
            if self._depth > self._config.max_depth:
                raise EncodeError(
                    f"Value nesting exceeds configured max_depth={self._config.max_depth}"
                )
            self._write_value(value)
        finally:
            self._depth -= 1

    def _write_value(self, value: Any) -> None:
        if value is None:
            self._writer.write_byte(Tag.NULL)
            return

        tp = type(value)
        tag = classify(tp)

        if tag is Tag.OBJECT:
            if not self._catalog.is_value_type(tp):
                oid = self._cache.lookup_ref(value)
                if oid in self._unfinished:
                    raise EncodeError(
                        f"Cycle through immutable {tp.__qualname__} cannot be encoded"
                    )
                if oid is not None:
                    self._writer.write_byte(Tag.OBJECT_REF)
                    self._writer.write_length(oid)
                    return
            self._write_object(value, tp)
        elif tag is Tag.ARRAY:
            self._write_array(value)
        elif tag is Tag.ENUM:
            self._write_enum(value, tp)
        elif tag is Tag.STRING:
            if not value:
                self._writer.write_byte(Tag.EMPTY_STRING)
                return
            self._writer.write_byte(Tag.STRING)
            self._write_interned(value)
        else:
            self._write_scalar(tag, value)

    def _write_interned(self, value: str) -> None:
        atom, known = self._cache.intern_string(value)
        self._writer.write_length(atom)
        if known:
            return
        try:
            payload = value.encode("utf-8")
        except UnicodeEncodeError as err:
            raise EncodeError(f"String {value!r} is not valid Unicode: {err}") from err
        self._writer.write_length(len(payload))
        self._writer.write_bytes(payload)

    def _write_type(self, cls: type) -> None:
        namespace, name = self._catalog.name_of(cls)
        self._write_interned(namespace)
        self._write_interned(name)

    def _write_scalar(self, tag: Tag, value: Any) -> None:
        writer = self._writer
        writer.write_byte(tag)
        try:
            if tag in _INTEGER_LAYOUT:
                size, signed = _INTEGER_LAYOUT[tag]
                if signed:
                    writer.write_int(value, size)
                else:
                    writer.write_uint(value, size)
            elif tag is Tag.BOOLEAN:
                writer.write_bool(value)
            elif tag is Tag.DOUBLE:
                writer.write_float64(value)
            elif tag is Tag.SINGLE:
                writer.write_float32(value)
            elif tag is Tag.CHAR:
                writer.write_char(value)
            elif tag is Tag.DATETIME:
                writer.write_datetime(value)
            elif tag is Tag.TIMESPAN:
                writer.write_timedelta(value)
            elif tag is Tag.DECIMAL:
                writer.write_decimal(value)
            else:
                raise EncodeError(f"No scalar encoding for tag {tag.name}")
        except (ValueError, OverflowError) as err:
            raise EncodeError(f"Cannot encode {value!r} as {tag.name}: {err}") from err

    def _write_enum(self, value: Any, tp: type) -> None:
        underlying = self._catalog.underlying_of(tp)
        raw = value.value
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise EncodeError(
                f"Enum member {value!r} has non-integer value {raw!r}"
            )
        self._writer.write_byte(Tag.ENUM)
        self._write_type(tp)
        size = underlying.bits // 8
        try:
            if underlying.signed:
                self._writer.write_int(raw, size)
            else:
                self._writer.write_uint(raw, size)
        except ValueError as err:
            raise EncodeError(
                f"Enum member {value!r} does not fit {underlying.__name__}"
            ) from err

    def _write_object(self, value: Any, tp: type) -> None:
        catalog = self._catalog
        info = catalog.info(tp)

        self._writer.write_byte(Tag.OBJECT)
        self._write_type(tp)
        oid = self._cache.register_new_ref(value, track=not info.value_type)
        self._writer.write_length(oid)

        if catalog.is_self_describing(tp):
            pairs = catalog.collect_fields(value, self._cache.context)
            constructed = catalog.is_constructed(tp)
            if constructed:
                self._unfinished.add(oid)
            self._writer.write_length(len(pairs))
            for name, field_value in pairs:
                self._write_interned(name)
                self.write(field_value)
            if constructed:
                self._unfinished.discard(oid)
            return

        members = catalog.members_of(tp)
        self._writer.write_length(len(members))
        for member in members:
            self._write_interned(member.name)
            field_value = member.get(value)
            if member.nullable:
                self._write_nullable(field_value)
            else:
                self.write(field_value)

    def _write_nullable(self, value: Any) -> None:
        self._writer.write_byte(Tag.NULLABLE)
        if value is None:
            self._writer.write_bool(False)
            return
        self._writer.write_bool(True)
        self.write(value)

    def _write_array(self, value: Any) -> None:
        if isinstance(value, Array):
            # Object vectors share the list encoding, so they take the general
            # form to read back as Array
            if not value.is_vector or value.element_type is object:
                self._write_general_array(value)
                return
            element_type = value.element_type
            items: Sequence[Any] = value.tolist()
        elif isinstance(value, (bytes, bytearray)):
            element_type = UInt8
            items = value
        else:
            element_type = object
            items = value

        writer = self._writer
        kind = element_type if is_pod_type(element_type) else None
        element_tag = tag_for_pod(element_type) if kind is not None else Tag.NULL
        count = len(items)

        if count == 0:
            if kind is not None:
                writer.write_byte(Tag.EMPTY_POD_ARRAY)
                writer.write_byte(element_tag)
            else:
                writer.write_byte(Tag.EMPTY_ARRAY)
                self._write_type(element_type)
            return

        if count == 1:
            if kind is not None:
                writer.write_byte(Tag.SINGLE_POD_ARRAY)
                writer.write_byte(element_tag)
                self.write(self._as_kind(items[0], kind))
            else:
                writer.write_byte(Tag.SINGLE_ARRAY)
                self._write_type(element_type)
                self.write(items[0])
            return

        if element_type is UInt8:
            try:
                payload = bytes(items)
            except (TypeError, ValueError) as err:
                raise EncodeError(f"Byte array holds a non-byte value: {err}") from err
            writer.write_byte(Tag.BYTE_ARRAY)
            writer.write_length(len(payload))
            writer.write_bytes(payload)
            return

        if kind is not None:
            writer.write_byte(Tag.UNARY_POD_ARRAY)
            writer.write_byte(element_tag)
            writer.write_length(count)
            for item in items:
                self.write(self._as_kind(item, kind))
            return

        writer.write_byte(Tag.UNARY_ARRAY)
        self._write_type(element_type)
        writer.write_length(count)
        for item in items:
            self.write(item)

    def _write_general_array(self, array: Array) -> None:
        writer = self._writer
        writer.write_byte(Tag.ARRAY)
        self._write_type(array.element_type)
        writer.write_length(array.rank)
        try:
            for lower, length in zip(array.lower_bounds, array.shape):
                writer.write_int(lower, 4)
                writer.write_int(length, 4)
        except ValueError as err:
            raise EncodeError(f"Array bounds do not fit 32 bits: {err}") from err
        for index in array.indices():
            self.write(array[index])

    @staticmethod
    def _as_kind(item: Any, kind: type) -> Any:
        # Elements of a plain-data array are written with the array's element kind
        if item is None or type(item) is kind:
            return item
        if issubclass(kind, _NUMERIC_KINDS):
            try:
                return kind(item)
            except (TypeError, ValueError) as err:
                raise EncodeError(f"Cannot store {item!r} in a {kind.__name__} array") from err
        return item
