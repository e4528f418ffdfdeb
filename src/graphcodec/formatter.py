"""Public serialize/deserialize entry points.

This module provides the Formatter class and module-level helpers. Each
top-level call opens its own Cache, writes or reads exactly one root value,
and discards the cache, so consecutive calls on the same stream are fully
independent.
"""

from __future__ import annotations

import io
import logging
from typing import Any, BinaryIO, Optional

from .catalog import TypeCatalog, default_catalog
from .codec.binary import BinaryReader, BinaryWriter
from .codec.cache import Cache
from .codec.decoder import Decoder
from .codec.encoder import Encoder
from .config import DEFAULT_CONFIG, CodecConfig
from .exceptions import InvalidArgumentsError

logger = logging.getLogger(__name__)

_MISSING: Any = object()


class Formatter:
    """Serializes object graphs to binary streams and back.

    Attributes:
        catalog: Type catalog used to name, enumerate and construct objects
        context: Default context handed to self-describing construction hooks
        config: Nesting limit plus decoding limits and options
        surrogate_selector: Reserved for per-type substitution (currently unused)

    Examples:
        ```python
        import io
        from graphcodec import Formatter

        formatter = Formatter()
        buffer = io.BytesIO()
        formatter.serialize(buffer, "test")
        formatter.serialize(buffer, [1, 2, 3])

        buffer.seek(0)
        assert formatter.deserialize(buffer) == "test"
        assert formatter.deserialize(buffer) == [1, 2, 3]
        ```
    """

    def __init__(
        self,
        catalog: Optional[TypeCatalog] = None,
        context: Any = None,
        config: Optional[CodecConfig] = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else default_catalog
        self.context = context
        self.config = config if config is not None else DEFAULT_CONFIG
        self.surrogate_selector: Any = None

    def serialize(self, stream: BinaryIO, value: Any, context: Any = _MISSING) -> None:
        """Write one value (and everything it references) to stream.

        Args:
            stream: Writable binary stream
            value: Root value; must not be None
            context: Context for this call (default: the formatter's context)

        Raises:
            InvalidArgumentsError: If stream is None or not writable, or value is None
            SchemaError: If a structural type is not registered
            UnsupportedTypeError: If a value's type cannot be classified
            EncodeError: If a value does not fit its wire representation or
                nests deeper than config.max_depth
        """
        if stream is None:
            raise InvalidArgumentsError("stream must not be None")
        if value is None:
            raise InvalidArgumentsError("Cannot serialize a freestanding None")
        writable = getattr(stream, "writable", None)
        if writable is not None and not writable():
            raise InvalidArgumentsError("Stream is not writable")

        if context is _MISSING:
            context = self.context

        writer = BinaryWriter(stream)
        with Cache(context) as cache:
            Encoder(writer, cache, self.catalog, self.config).write_root(value)
            logger.debug(
                "Serialized %s in %d bytes (%d atoms, %d objects)",
                type(value).__qualname__,
                writer.bytes_written,
                cache.atom_count,
                cache.object_count,
            )

    def deserialize(self, stream: BinaryIO, context: Any = _MISSING) -> Any:
        """Read one value from stream.

        Args:
            stream: Readable binary stream positioned at the start of a value
            context: Context for this call (default: the formatter's context)

        Returns:
            The decoded value

        Raises:
            InvalidArgumentsError: If stream is None or not readable
            MalformedStreamError: If the data is truncated or corrupted
            MissingFieldError: If an object lacks a required member
            UnresolvableTypeError: If a type name is unknown to the catalog
            UnsupportedShapeError: If an object record names a non-object type
        """
        if stream is None:
            raise InvalidArgumentsError("stream must not be None")
        readable = getattr(stream, "readable", None)
        if readable is not None and not readable():
            raise InvalidArgumentsError("Stream is not readable")

        if context is _MISSING:
            context = self.context

        reader = BinaryReader(stream)
        with Cache(context) as cache:
            value = Decoder(reader, cache, self.catalog, self.config).read_root()
            logger.debug(
                "Deserialized %s from %d bytes (%d atoms, %d objects)",
                type(value).__qualname__,
                reader.bytes_read,
                cache.atom_count,
                cache.object_count,
            )
        return value

    def encode(self, value: Any, context: Any = _MISSING) -> bytes:
        """Serialize value to a new bytes object."""
        buffer = io.BytesIO()
        self.serialize(buffer, value, context)
        return buffer.getvalue()

    def decode(self, data: bytes, context: Any = _MISSING) -> Any:
        """Deserialize the first value held in data."""
        return self.deserialize(io.BytesIO(data), context)


_default_formatter = Formatter()


def serialize(stream: BinaryIO, value: Any, context: Any = None) -> None:
    """Write value to stream with the default catalog.

    See Formatter.serialize().
    """
    _default_formatter.serialize(stream, value, context)


def deserialize(stream: BinaryIO, context: Any = None) -> Any:
    """Read one value from stream with the default catalog.

    See Formatter.deserialize().
    """
    return _default_formatter.deserialize(stream, context)


def encode(value: Any, context: Any = None) -> bytes:
    """Serialize value to bytes with the default catalog.

    Example:
        >>> from graphcodec import encode, decode
        >>> decode(encode(["a", "a"]))
        ['a', 'a']
    """
    return _default_formatter.encode(value, context)


def decode(data: bytes, context: Any = None) -> Any:
    """Deserialize the first value in data with the default catalog."""
    return _default_formatter.decode(data, context)
