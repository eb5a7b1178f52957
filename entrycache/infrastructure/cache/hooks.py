"""Default no-op hooks. Subclass or pass any object with the same methods."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entrycache.infrastructure.cache.entry import CacheEntry


class CacheHooks:
    """No-op implementation of CacheHooksProtocol.

    Override only what a type needs, e.g. on_delete to drop a search-index
    document or before_save to add derived fields.
    """

    async def before_save(self, entry: CacheEntry, data: dict[str, Any]) -> dict[str, Any]:
        return data

    async def on_update(self, entry: CacheEntry, changes: dict[str, Any]) -> None:
        return None

    async def after_save(self, entry: CacheEntry) -> None:
        return None

    async def on_delete(self, entry: CacheEntry) -> None:
        return None


NO_HOOKS = CacheHooks()
