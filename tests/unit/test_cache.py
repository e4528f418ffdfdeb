"""Tests for the per-call intern and reference tables."""

from __future__ import annotations

import pytest

from graphcodec import MalformedStreamError
from graphcodec.codec.cache import Cache


class TestStringInterning:
    """Test atom assignment."""

    def test_dense_ids_from_one(self) -> None:
        """Test that new strings get 1, 2, 3, ..."""
        cache = Cache()
        assert cache.intern_string("a") == (1, False)
        assert cache.intern_string("b") == (2, False)
        assert cache.intern_string("c") == (3, False)

    def test_known_string_keeps_id(self) -> None:
        """Test that a repeated string returns its first id."""
        cache = Cache()
        cache.intern_string("x")
        cache.intern_string("y")
        assert cache.intern_string("x") == (1, True)
        assert cache.atom_count == 2

    def test_resolve_produces_once(self) -> None:
        """Test that the payload is only read on first sight of an atom."""
        cache = Cache()
        calls = []

        def produce() -> str:
            calls.append(1)
            return "hello"

        assert cache.resolve_string(1, produce) == "hello"
        assert cache.resolve_string(1, produce) == "hello"
        assert len(calls) == 1

    def test_resolve_empty_string_once(self) -> None:
        """Test that an empty string atom is cached like any other."""
        cache = Cache()
        calls = []

        def produce() -> str:
            calls.append(1)
            return ""

        cache.resolve_string(1, produce)
        cache.resolve_string(1, produce)
        assert len(calls) == 1


class TestReferences:
    """Test object id assignment and resolution."""

    def test_register_and_lookup(self) -> None:
        """Test that registered objects are found by identity."""
        cache = Cache()
        first, second = object(), object()
        assert cache.register_new_ref(first) == 1
        assert cache.register_new_ref(second) == 2
        assert cache.lookup_ref(first) == 1
        assert cache.lookup_ref(second) == 2
        assert cache.lookup_ref(object()) is None

    def test_identity_not_equality(self) -> None:
        """Test that equal but distinct objects are different references."""
        cache = Cache()
        cache.register_new_ref([1])
        assert cache.lookup_ref([1]) is None

    def test_untracked_consumes_id(self) -> None:
        """Test that value types take an id but are never found again."""
        cache = Cache()
        value = object()
        assert cache.register_new_ref(value, track=False) == 1
        assert cache.lookup_ref(value) is None
        assert cache.register_new_ref(object()) == 2
        assert cache.object_count == 2

    def test_atoms_and_objects_are_separate(self) -> None:
        """Test the two independent id spaces."""
        cache = Cache()
        assert cache.intern_string("name") == (1, False)
        assert cache.register_new_ref(object()) == 1

    def test_bind_and_resolve(self) -> None:
        """Test binding decoded instances to stream ids."""
        cache = Cache()
        target = object()
        cache.bind_ref(1, target)
        assert cache.resolve_ref(1) is target

    def test_bind_twice(self) -> None:
        """Test that an id cannot be bound twice."""
        cache = Cache()
        cache.bind_ref(1, object())
        with pytest.raises(MalformedStreamError, match="bound twice"):
            cache.bind_ref(1, object())

    def test_unknown_reference(self) -> None:
        """Test that resolving an unbound id fails."""
        cache = Cache()
        with pytest.raises(MalformedStreamError, match="out of range"):
            cache.resolve_ref(3)


class TestLifecycle:
    """Test the per-call lifecycle."""

    def test_context_manager_clears(self) -> None:
        """Test that leaving the block empties the tables."""
        target = object()
        with Cache(context="ctx") as cache:
            assert cache.context == "ctx"
            cache.intern_string("a")
            cache.register_new_ref(target)
        assert cache.lookup_ref(target) is None
        assert cache.intern_string("a") == (1, False)
