"""Set collection cache."""

from __future__ import annotations

from typing import Any

from entrycache.infrastructure.cache.related.base import CollectionCache


class UnsortedSetCache(CollectionCache):
    async def join(self, member: Any) -> int | bool:
        if not self.has_pk() or not member:
            return False
        return await self.redis.sadd(self.cache_key, member)

    async def join_all(self, members: list[Any]) -> int | bool:
        if not self.has_pk() or not members:
            return False
        return await self.redis.sadd(self.cache_key, *members)

    async def has(self, member: Any) -> bool:
        if not self.has_pk() or not member:
            return False
        return bool(await self.redis.sismember(self.cache_key, member))

    async def remove(self, member: Any) -> int | bool:
        if not self.has_pk() or not member:
            return False
        return await self.redis.srem(self.cache_key, member)

    async def length(self) -> int:
        if not self.has_pk():
            return 0
        return await self.redis.scard(self.cache_key)

    async def members(self) -> list[Any]:
        if not self.has_pk():
            return []
        return list(await self.redis.smembers(self.cache_key))

    async def random_members(self, count: int = 1) -> list[Any]:
        """Up to count distinct random members."""
        if not self.has_pk():
            return []
        return list(await self.redis.srandmember(self.cache_key, count) or [])
