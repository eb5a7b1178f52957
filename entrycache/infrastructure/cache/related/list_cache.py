"""List collection cache (FIFO queue: push left, pop right)."""

from __future__ import annotations

from typing import Any

from entrycache.infrastructure.cache.related.base import CollectionCache


class ListCache(CollectionCache):
    async def push(self, *members: Any) -> int | bool:
        if not self.has_pk() or not members:
            return False
        return await self.redis.lpush(self.cache_key, *members)

    async def pop(self) -> Any:
        if not self.has_pk():
            return None
        return await self.redis.rpop(self.cache_key)

    async def length(self) -> int:
        if not self.has_pk():
            return 0
        return await self.redis.llen(self.cache_key)
