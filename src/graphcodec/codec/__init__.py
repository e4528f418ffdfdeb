"""Wire-level building blocks for graphcodec.

This module provides the tag space, the length codec, the binary stream
primitives and the per-call cache. The recursive Encoder and Decoder live in
the ``encoder`` and ``decoder`` submodules.
"""

from __future__ import annotations

from .binary import BinaryReader, BinaryWriter
from .cache import Cache
from .length import decode_length, encode_length
from .tags import Tag, classify, pod_kind

__all__ = [
    "Tag",
    "classify",
    "pod_kind",
    "Cache",
    "BinaryReader",
    "BinaryWriter",
    "encode_length",
    "decode_length",
]
