"""Utility functions for graphcodec.

This module provides size calculation helpers.
"""

from __future__ import annotations

from .sizing import encoded_size, member_sizes

__all__ = [
    "encoded_size",
    "member_sizes",
]
