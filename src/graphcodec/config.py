"""Configuration for the codec.

This module provides the CodecConfig dataclass, which bounds what the decoder
accepts from a stream and how deeply either direction may nest. The limits
turn corrupted lengths and runaway nesting into clean errors instead of huge
allocations or interpreter stack overflows.
"""

from __future__ import annotations

from dataclasses import dataclass

from .codec.length import MAX_LENGTH


@dataclass(frozen=True)
class CodecConfig:
    """Limits and decoding options.

    Attributes:
        max_length: Largest length, count or byte size accepted while decoding
            (default 0x7FFFFFFF). Applies to strings, arrays and field counts.
        max_rank: Largest array rank accepted while decoding (default 32)
        max_depth: Deepest value nesting walked while encoding or decoding
            (default 128). The root value is at depth 1 and every field or
            element is one level below its container.
        strict_utf8: Reject invalid UTF-8 in strings (default True). When False,
            invalid sequences are decoded with U+FFFD replacement characters.

    Examples:
        ```python
        from graphcodec import CodecConfig, Formatter

        # Untrusted input: refuse anything larger than 1 MiB per value
        formatter = Formatter(config=CodecConfig(max_length=1 << 20))
        ```
    """

    max_length: int = 0x7FFFFFFF
    max_rank: int = 32
    max_depth: int = 128
    strict_utf8: bool = True

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not 0 < self.max_length <= MAX_LENGTH:
            raise ValueError(f"max_length must be 1-{MAX_LENGTH}, got {self.max_length}")

        if not 1 <= self.max_rank <= 255:
            raise ValueError(f"max_rank must be 1-255, got {self.max_rank}")

        if self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")


DEFAULT_CONFIG = CodecConfig()
