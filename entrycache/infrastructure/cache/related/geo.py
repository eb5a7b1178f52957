"""Geo collection cache (members with coordinates)."""

from __future__ import annotations

from typing import Any

from entrycache.infrastructure.cache.related.base import CollectionCache


class GeoCache(CollectionCache):
    async def add(self, member: str, longitude: float, latitude: float) -> int | bool:
        if not self.has_pk():
            return False
        return await self.redis.geoadd(self.cache_key, (longitude, latitude, member))

    async def position(self, *members: str) -> list[Any]:
        """(longitude, latitude) per member; None for unknown members."""
        if not self.has_pk() or not members:
            return []
        return list(await self.redis.geopos(self.cache_key, *members))

    async def distance(self, member1: str, member2: str, unit: str | None = None) -> float | None:
        if not self.has_pk():
            return None
        return await self.redis.geodist(self.cache_key, member1, member2, unit=unit)

    async def search_radius(
        self,
        longitude: float,
        latitude: float,
        radius: float,
        unit: str = "m",
        **options: Any,
    ) -> list[Any]:
        """Members within radius of a point; options go to GEORADIUS (withdist, count, sort, ...)."""
        if not self.has_pk():
            return []
        return list(
            await self.redis.georadius(
                self.cache_key, longitude, latitude, radius, unit=unit, **options
            )
        )

    async def search_radius_by_member(
        self, member: str, radius: float, unit: str = "m", **options: Any
    ) -> list[Any]:
        if not self.has_pk():
            return []
        return list(
            await self.redis.georadiusbymember(
                self.cache_key, member, radius, unit=unit, **options
            )
        )

    async def geohash(self, *members: str) -> list[str | None]:
        if not self.has_pk() or not members:
            return []
        return list(await self.redis.geohash(self.cache_key, *members))

    async def remove(self, *members: str) -> int | bool:
        if not self.has_pk() or not members:
            return False
        return await self.redis.zrem(self.cache_key, *members)
