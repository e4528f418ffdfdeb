"""Value types for graphcodec.

This module provides the GraphModel base class and the fixed-width scalar types
used to control how numbers and characters are written.
"""

from __future__ import annotations

from .base import GraphModel
from .scalars import (
    Char,
    FixedInt,
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

__all__ = [
    "GraphModel",
    "FixedInt",
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
]
