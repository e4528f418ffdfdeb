"""graphcodec: Compact Binary Object Graph Codec

A Python library that serializes arbitrary, possibly self-referential, object
graphs to a compact binary format without a pre-compiled schema. Designed for
in-process and storage use where encoded size matters more than
cross-language interoperability.

Key Features:
- One-byte tags and variable-width lengths
- Shared and cyclic references preserved by identity
- Every string (type names, member names, values) interned per call
- Compact encodings for empty, single-element and plain-data arrays
- Dataclasses and pydantic models as first-class types

Quick Start:
    >>> from dataclasses import dataclass
    >>> from typing import Optional
    >>> from graphcodec import decode, encode, register
    >>>
    >>> @register
    ... @dataclass(eq=False)
    ... class Node:
    ...     name: str
    ...     next: Optional["Node"] = None
    >>>
    >>> node = Node("loop")
    >>> node.next = node
    >>> decoded = decode(encode(node))
    >>> decoded.next is decoded
    True
"""

from __future__ import annotations

from .arrays import Array
from .catalog import (
    MemberSpec,
    SelfDescribing,
    Strategy,
    TypeCatalog,
    default_catalog,
    register,
)
from .codec import Tag, classify, decode_length, encode_length, pod_kind
from .config import CodecConfig
from .exceptions import (
    DecodeError,
    EncodeError,
    GraphCodecError,
    InvalidArgumentsError,
    MalformedStreamError,
    MissingFieldError,
    SchemaError,
    UnresolvableTypeError,
    UnsupportedShapeError,
    UnsupportedTypeError,
)
from .formatter import Formatter, decode, deserialize, encode, serialize
from .models import (
    Char,
    Float32,
    GraphModel,
    Int8,
    Int16,
    Int32,
    Int64,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .utils import encoded_size, member_sizes

__version__ = "0.1.0"

__all__ = [
    # Core API
    "Formatter",
    "serialize",
    "deserialize",
    "encode",
    "decode",
    "CodecConfig",
    # Catalog
    "TypeCatalog",
    "MemberSpec",
    "SelfDescribing",
    "Strategy",
    "default_catalog",
    "register",
    # Values
    "Array",
    "GraphModel",
    "Int8",
    "UInt8",
    "Int16",
    "UInt16",
    "Int32",
    "UInt32",
    "Int64",
    "UInt64",
    "Float32",
    "Char",
    # Wire
    "Tag",
    "classify",
    "pod_kind",
    "encode_length",
    "decode_length",
    # Exceptions
    "GraphCodecError",
    "SchemaError",
    "UnsupportedTypeError",
    "EncodeError",
    "DecodeError",
    "MalformedStreamError",
    "MissingFieldError",
    "UnresolvableTypeError",
    "UnsupportedShapeError",
    "InvalidArgumentsError",
    # Sizing
    "encoded_size",
    "member_sizes",
    # Version
    "__version__",
]
