"""Request-scoped entry registry using contextvars.

Within one logical request the same entity is often looked up several
times; reusing the handle keeps its in-memory mirror. The registry is
scoped to the current async task/thread and dropped when the scope exits.

Usage:
    with entry_scope():
        a = CacheEntry.get_instance(widgets, 42)
        b = CacheEntry.get_instance(widgets, 42)
        assert a is b
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

T = TypeVar("T")

_entry_registry: ContextVar[dict[Hashable, Any] | None] = ContextVar(
    "entry_registry", default=None
)


@contextmanager
def entry_scope() -> Iterator[dict[Hashable, Any]]:
    """Open a fresh registry for the current context; restore the previous one on exit."""
    registry: dict[Hashable, Any] = {}
    token = _entry_registry.set(registry)
    try:
        yield registry
    finally:
        _entry_registry.reset(token)


def in_entry_scope() -> bool:
    """Return True if an entry scope is active in this context."""
    return _entry_registry.get() is not None


def scoped_instance(key: Hashable, factory: Callable[[], T]) -> T:
    """Return the registered object for key, creating it with factory if needed.

    Outside a scope every call builds a new object.
    """
    registry = _entry_registry.get()
    if registry is None:
        return factory()
    if key not in registry:
        registry[key] = factory()
    return registry[key]
