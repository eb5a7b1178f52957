"""Base class for collection caches bound to an entity's pk."""

from __future__ import annotations

from typing import Any, ClassVar

import redis.asyncio as redis

from entrycache.core.constants import DEFAULT_POOL
from entrycache.domain.exceptions import CacheConfigurationError
from entrycache.domain.protocols import StoreProvider
from entrycache.infrastructure.cache.keys import entry_key
from entrycache.infrastructure.cache.provider import get_redis_provider


class CollectionCache:
    """Forwards to native Redis collection commands on <namespace>:<pk>.

    Collection caches sit outside the stampede and tombstone machinery: no
    rebuilds, no negative caching. Subclasses set namespace.

    Operations return False / 0 / [] without touching the store when the pk
    is empty and allow_empty_pk is off.
    """

    namespace: ClassVar[str] = ""
    allow_empty_pk: ClassVar[bool] = False
    ttl: ClassVar[int | None] = None

    def __init__(
        self,
        pk: Any = "",
        *,
        pool: str = DEFAULT_POOL,
        provider: StoreProvider | None = None,
    ) -> None:
        if not self.namespace:
            raise CacheConfigurationError(
                f"{type(self).__name__} must set a namespace", adapter=type(self).__name__
            )
        self.pk = pk
        self.pool = pool
        self._provider = provider
        self.cache_key = entry_key(self.namespace, pk)

    @property
    def provider(self) -> StoreProvider:
        if self._provider is None:
            self._provider = get_redis_provider()
        return self._provider

    @property
    def redis(self) -> redis.Redis:
        return self.provider.get(self.pool)

    def has_pk(self) -> bool:
        return self.allow_empty_pk or (self.pk is not None and self.pk != "")

    async def delete(self) -> int:
        """Drop the whole collection."""
        if not self.has_pk():
            return 0
        return int(await self.redis.delete(self.cache_key))

    async def expire(self, ttl: int | None = None) -> bool:
        """Set the collection's expiry (defaults to the class ttl)."""
        ttl = ttl if ttl is not None else self.ttl
        if not self.has_pk() or not ttl:
            return False
        return bool(await self.redis.expire(self.cache_key, ttl))
