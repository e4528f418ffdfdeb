"""Typed, multi-dimensional arrays.

Python lists carry neither an element type nor a rank, but the wire format
records both (plus a lower bound per dimension). ``Array`` fills that gap:

    >>> from graphcodec import Array
    >>> from graphcodec.models.scalars import Int32
    >>> grid = Array(Int32, lengths=(2, 3))
    >>> grid[1, 2] = 7
    >>> grid.rank, grid.shape, len(grid)
    (2, (2, 3), 6)

Elements are stored in odometer order: the first dimension's index varies
fastest, carrying into higher dimensions on overflow. The codec writes and
reads elements in the same order.

A one-dimensional ``Array`` of ``object`` is always written in the general
multi-dimensional form. The compact vector forms for ``object`` elements are
what a plain ``list`` is written as, and they read back as ``list``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence
from datetime import timedelta
from typing import Any

from .models.scalars import Char, FixedInt, Float32, Int64

_COERCED = (FixedInt, Float32, Char)


def iter_indices(lower_bounds: Sequence[int], lengths: Sequence[int]) -> Iterator[tuple[int, ...]]:
    """Enumerate every index of a multi-dimensional space in odometer order.

    Args:
        lower_bounds: Lower bound of each dimension
        lengths: Length of each dimension

    Yields:
        Index tuples, first dimension fastest

    Example:
        >>> list(iter_indices((0, 1), (2, 2)))
        [(0, 1), (1, 1), (0, 2), (1, 2)]
    """
    if any(length <= 0 for length in lengths):
        return

    indices = list(lower_bounds)
    while True:
        yield tuple(indices)
        for dim, lower in enumerate(lower_bounds):
            indices[dim] += 1
            if indices[dim] < lower + lengths[dim]:
                break
            indices[dim] = lower
        else:
            return


def _normalize_element_type(element_type: type) -> type:
    if element_type is int:
        return Int64
    return element_type


def _default_value(element_type: type) -> Any:
    if element_type is bool:
        return False
    if issubclass(element_type, FixedInt):
        return element_type(0)
    if element_type is Float32:
        return Float32(0.0)
    if element_type is float:
        return 0.0
    if element_type is timedelta:
        return timedelta(0)
    return None


class Array:
    """A typed array of arbitrary rank with per-dimension lower bounds.

    Attributes:
        element_type: Declared type of the elements (``object`` for any)
        shape: Length of each dimension
        lower_bounds: Lowest valid index of each dimension
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(
        self,
        element_type: type,
        lengths: Sequence[int],
        lower_bounds: Sequence[int] | None = None,
        values: Iterable[Any] | None = None,
    ) -> None:
        """Create an array.

        Args:
            element_type: Element type; plain ``int`` is stored as Int64
            lengths: Length of each dimension (at least one dimension)
            lower_bounds: Lower bound of each dimension (default all zero)
            values: Initial elements in odometer order (default type defaults)

        Raises:
            ValueError: If dimensions are inconsistent or values has the wrong size
        """
        if not isinstance(element_type, type):
            raise ValueError(f"element_type must be a type, got {element_type!r}")
        if not lengths:
            raise ValueError("Array requires at least one dimension")
        if any(length < 0 for length in lengths):
            raise ValueError(f"Array lengths must be non-negative, got {tuple(lengths)}")
        if lower_bounds is None:
            lower_bounds = (0,) * len(lengths)
        if len(lower_bounds) != len(lengths):
            raise ValueError(
                f"Got {len(lower_bounds)} lower bounds for {len(lengths)} dimensions"
            )

        self.element_type = _normalize_element_type(element_type)
        self.shape = tuple(int(length) for length in lengths)
        self.lower_bounds = tuple(int(lower) for lower in lower_bounds)
        self._strides = []
        stride = 1
        for length in self.shape:
            self._strides.append(stride)
            stride *= length

        size = math.prod(self.shape)
        if values is None:
            default = _default_value(self.element_type)
            self._values = [default] * size
        else:
            self._values = [self._coerce(value) for value in values]
            if len(self._values) != size:
                raise ValueError(
                    f"Array of shape {self.shape} needs {size} values, got {len(self._values)}"
                )

    @classmethod
    def of(cls, element_type: type, values: Iterable[Any]) -> Array:
        """Create a one-dimensional, zero-based array from values.

        Example:
            >>> Array.of(Int32, [1, 2, 3]).shape
            (3,)
        """
        items = list(values)
        return cls(element_type, (len(items),), values=items)

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def is_vector(self) -> bool:
        """True for one-dimensional, zero-based arrays."""
        return self.rank == 1 and self.lower_bounds[0] == 0

    def _coerce(self, value: Any) -> Any:
        if value is None:
            return None
        if issubclass(self.element_type, _COERCED) and type(value) is not self.element_type:
            return self.element_type(value)
        return value

    def _offset(self, index: Any) -> int:
        if not isinstance(index, tuple):
            index = (index,)
        if len(index) != self.rank:
            raise IndexError(f"Expected {self.rank} indices, got {len(index)}")
        offset = 0
        for dim, position in enumerate(index):
            relative = position - self.lower_bounds[dim]
            if relative < 0 or relative >= self.shape[dim]:
                raise IndexError(f"Index {position} out of range for dimension {dim}")
            offset += relative * self._strides[dim]
        return offset

    def __getitem__(self, index: Any) -> Any:
        return self._values[self._offset(index)]

    def __setitem__(self, index: Any, value: Any) -> None:
        self._values[self._offset(index)] = self._coerce(value)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def indices(self) -> Iterator[tuple[int, ...]]:
        """Enumerate all indices in odometer order."""
        return iter_indices(self.lower_bounds, self.shape)

    def tolist(self) -> list[Any]:
        """Return the elements as a flat list in odometer order."""
        return list(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Array):
            return NotImplemented
        return (
            self.element_type is other.element_type
            and self.shape == other.shape
            and self.lower_bounds == other.lower_bounds
            and self._values == other._values
        )

    def __repr__(self) -> str:
        bounds = ""
        if any(self.lower_bounds):
            bounds = f", lower_bounds={self.lower_bounds}"
        return (
            f"Array({self.element_type.__name__}, shape={self.shape}{bounds}, "
            f"values={self._values!r})"
        )
