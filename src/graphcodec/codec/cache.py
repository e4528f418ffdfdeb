"""Per-call intern and reference tables.

A Cache lives for exactly one top-level serialize or deserialize call. It owns
two independent id spaces, both starting at 1 and growing densely:

- atoms: strings (type names, member names, string values)
- object references: structural object instances

Object identity is tracked through integer handles keyed by ``id(obj)``. The
cache keeps every tracked object alive until it is closed so that ``id()``
values cannot be recycled inside one call.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..exceptions import MalformedStreamError


class Cache:
    """Intern and reference tables for a single encode or decode call.

    Example:
        >>> with Cache() as cache:
        ...     cache.intern_string("name")
        ...     cache.intern_string("name")
        (1, False)
        (1, True)
    """

    def __init__(self, context: Any = None) -> None:
        """Initialize empty tables.

        Args:
            context: Opaque caller context passed through to construction hooks
        """
        self.context = context
        self._atoms: dict[str, int] = {}
        self._strings: dict[int, str] = {}
        self._handles: dict[int, int] = {}
        self._arena: list[Any] = []
        self._objects: dict[int, Any] = {}
        self._next_object = 0

    def __enter__(self) -> Cache:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def atom_count(self) -> int:
        return max(len(self._atoms), len(self._strings))

    @property
    def object_count(self) -> int:
        return max(self._next_object, len(self._objects))

    def intern_string(self, value: str) -> tuple[int, bool]:
        """Return the atom id for value and whether it was already known.

        The first sight of a string assigns the next id; later calls return
        the same id and never reassign it.
        """
        atom = self._atoms.get(value)
        if atom is not None:
            return atom, True
        atom = len(self._atoms) + 1
        self._atoms[value] = atom
        return atom, False

    def resolve_string(self, atom: int, produce: Callable[[], str]) -> str:
        """Return the string for atom, calling produce only on first sight."""
        value = self._strings.get(atom)
        if value is None:
            value = produce()
            self._strings[atom] = value
        return value

    def register_new_ref(self, obj: Any, track: bool = True) -> int:
        """Assign the next object id to obj.

        Args:
            obj: Instance about to be written
            track: Remember the identity so later occurrences become references.
                Value types pass False: they consume an id but are never shared.

        Returns:
            The new object id
        """
        self._next_object += 1
        if track:
            self._handles[id(obj)] = self._next_object
            self._arena.append(obj)
        return self._next_object

    def lookup_ref(self, obj: Any) -> int | None:
        """Return the id of a previously registered object, else None."""
        return self._handles.get(id(obj))

    def bind_ref(self, oid: int, obj: Any) -> None:
        """Bind a freshly allocated instance to the id read from the stream.

        Raises:
            MalformedStreamError: If the id is already bound
        """
        if oid in self._objects:
            raise MalformedStreamError(f"Object id {oid} bound twice")
        self._objects[oid] = obj

    def resolve_ref(self, oid: int) -> Any:
        """Return the instance bound to oid.

        Raises:
            MalformedStreamError: If the id was never bound
        """
        try:
            return self._objects[oid]
        except KeyError:
            raise MalformedStreamError(f"Object reference {oid} out of range") from None

    def close(self) -> None:
        """Discard all tables."""
        self._atoms.clear()
        self._strings.clear()
        self._handles.clear()
        self._arena.clear()
        self._objects.clear()
