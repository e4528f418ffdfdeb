"""Exception hierarchy for graphcodec.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from GraphCodecError for easy catching of any graphcodec-specific error.
"""

from __future__ import annotations


class GraphCodecError(Exception):
    """Base exception for all graphcodec errors."""

    pass


class SchemaError(GraphCodecError):
    """Raised when a type registration is invalid or a type is not registered.

    Examples:
        - Writing an instance of a class that was never registered
        - Registering the same wire name for two different classes
        - Members cannot be derived (no dataclass/pydantic fields, no fields=)
        - Enum registered with a non-integer underlying kind
    """

    pass


class UnsupportedTypeError(GraphCodecError, TypeError):
    """Raised when a type cannot be mapped to any tag.

    Examples:
        - complex numbers
        - user subclasses of str, int or float that are not graphcodec scalars
    """

    pass


class EncodeError(GraphCodecError):
    """Raised when writing a value fails.

    Examples:
        - Integer out of range for its fixed width
        - Decimal with too many digits or a NaN/infinite Decimal
        - Text that cannot be encoded as UTF-8 (lone surrogates)
        - Enum member whose value is not an integer
    """

    pass


class DecodeError(GraphCodecError):
    """Base class for failures while reading a stream."""

    pass


class MalformedStreamError(DecodeError):
    """Raised when the stream cannot be decoded.

    Examples:
        - Unknown tag byte
        - Object reference id that was never bound
        - Truncated data (insufficient bytes)
        - Invalid UTF-8 payload
        - Length above the configured limit
    """

    pass


class MissingFieldError(DecodeError):
    """Raised when an object's stream data lacks a required member."""

    def __init__(self, type_name: str, member: str) -> None:
        super().__init__(f"Stream does not contain a value for '{member}' of {type_name}")
        self.type_name = type_name
        self.member = member


class UnresolvableTypeError(DecodeError):
    """Raised when a decoded type name is not known to the catalog."""

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(f"Cannot resolve type {name!r} in namespace {namespace!r}")
        self.namespace = namespace
        self.name = name


class UnsupportedShapeError(DecodeError):
    """Raised when an object record names an enum, array or primitive type.

    Normal dispatch never produces such a record, so this only happens with
    corrupted or hand-crafted streams.
    """

    pass


class InvalidArgumentsError(GraphCodecError, ValueError):
    """Raised for bad call arguments, before any byte is read or written.

    Examples:
        - stream is None
        - stream is not readable (deserialize) or not writable (serialize)
        - root value is None (serialize)
    """

    pass
