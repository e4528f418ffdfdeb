"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io

import pytest

from graphcodec import Formatter, TypeCatalog


@pytest.fixture
def catalog() -> TypeCatalog:
    """Fresh catalog with only the built-in types registered."""
    return TypeCatalog()


@pytest.fixture
def formatter(catalog: TypeCatalog) -> Formatter:
    """Formatter bound to the fresh catalog."""
    return Formatter(catalog=catalog)


@pytest.fixture
def buffer() -> io.BytesIO:
    """Empty in-memory stream."""
    return io.BytesIO()
