"""Collaborator protocols (DIP).

The engine depends on these shapes only; concrete implementations live in
infrastructure (Redis provider, SQLAlchemy data source) or in callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from entrycache.infrastructure.cache.entry import CacheEntry


class DataSource(Protocol):
    """Authoritative source for one entity type."""

    async def load_current(self, pk: Any) -> Any:
        """Return the current record for pk, or None when it does not exist.

        The record may be a mapping or any object convertible to one (see
        entrycache.infrastructure.cache.codec.to_mapping). An empty mapping
        means "exists but has no fields" and is not the same as None.
        """
        ...


class StoreProvider(Protocol):
    """Hands out one store client per pool identifier."""

    def get(self, pool: str) -> Redis:
        """Return the client bound to pool."""
        ...


class CacheHooksProtocol(Protocol):
    """Per-type side effects around persist, update and delete."""

    async def before_save(self, entry: CacheEntry, data: dict[str, Any]) -> dict[str, Any]:
        """Return the mapping to persist (may be data itself)."""
        ...

    async def on_update(self, entry: CacheEntry, changes: dict[str, Any]) -> None:
        """Called after the cached state was replaced or fields were mutated."""
        ...

    async def after_save(self, entry: CacheEntry) -> None:
        """Called after a write reached the store."""
        ...

    async def on_delete(self, entry: CacheEntry) -> None:
        """Called after del_cache removed the entry."""
        ...
