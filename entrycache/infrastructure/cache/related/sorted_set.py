"""Sorted-set collection cache (ordered member lists)."""

from __future__ import annotations

from typing import Any

from entrycache.infrastructure.cache.codec import to_mapping
from entrycache.infrastructure.cache.related.base import CollectionCache

SORT_SCORE_FACTOR = 10**10


def _lex_bound(member: Any, default: str) -> str:
    return f"[{member}" if member else default


class SortedSetCache(CollectionCache):
    """ZSET of member ids scored by sort order."""

    @staticmethod
    def calc_sort_score(item: Any, pk_field: str = "id") -> int:
        """Score that orders by sort, then by pk: (sort + 1) * 10**10 + pk."""
        data = to_mapping(item)
        return (int(data.get("sort") or 0) + 1) * SORT_SCORE_FACTOR + int(data[pk_field])

    async def join(self, member: Any, score: float = 0) -> int | bool:
        if not self.has_pk() or not member:
            return False
        return await self.redis.zadd(self.cache_key, {member: score})

    async def has(self, member: Any) -> bool:
        if not self.has_pk() or not member:
            return False
        return await self.redis.zscore(self.cache_key, member) is not None

    async def remove(self, member: Any) -> int | bool:
        if not self.has_pk() or not member:
            return False
        return await self.redis.zrem(self.cache_key, member)

    async def remove_multi(self, members: list[Any]) -> int | bool:
        if not self.has_pk() or not members:
            return False
        return await self.redis.zrem(self.cache_key, *members)

    async def remove_below(self, max_member: int) -> int | bool:
        """Remove members lexically below max_member (exclusive)."""
        if not self.has_pk() or max_member <= 0:
            return False
        return await self.redis.zremrangebylex(self.cache_key, "-", f"({max_member}")

    async def length(self) -> int:
        if not self.has_pk():
            return 0
        return await self.redis.zcard(self.cache_key)

    async def length_between(self, min_score: float | str, max_score: float | str) -> int:
        """Members with min_score <= score <= max_score."""
        if not self.has_pk():
            return 0
        return await self.redis.zcount(self.cache_key, min_score, max_score)

    async def length_by_lex(self, start: Any = None, end: Any = None) -> int:
        """Members in [start, end]; a falsy bound is open."""
        if not self.has_pk():
            return 0
        return await self.redis.zlexcount(
            self.cache_key, _lex_bound(start, "-"), _lex_bound(end, "+")
        )

    async def get_list(
        self,
        start: int = 0,
        rows: int = 0,
        descending: bool = False,
        with_scores: bool = False,
        min_score: float | str | None = None,
        max_score: float | str | None = None,
    ) -> list[Any]:
        """Page through members by rank, or by score when a score bound is given.

        rows <= 0 returns everything from start.
        """
        if not self.has_pk():
            return []
        client = self.redis
        if min_score is not None or max_score is not None:
            low = min_score if min_score is not None else "-inf"
            high = max_score if max_score is not None else "+inf"
            num = rows if rows > 0 else -1
            if descending:
                result = await client.zrevrangebyscore(
                    self.cache_key, high, low, start=start, num=num, withscores=with_scores
                )
            else:
                result = await client.zrangebyscore(
                    self.cache_key, low, high, start=start, num=num, withscores=with_scores
                )
        else:
            end = start + rows - 1 if rows > 0 else -1
            result = await client.zrange(
                self.cache_key, start, end, desc=descending, withscores=with_scores
            )
        return list(result or [])

    async def get_list_by_lex(
        self,
        start_member: Any = None,
        end_member: Any = None,
        offset: int | None = None,
        limit: int | None = None,
        descending: bool = False,
    ) -> list[Any]:
        """Members in the lexical range [start_member, end_member]."""
        if not self.has_pk():
            return []
        low = _lex_bound(start_member, "-")
        high = _lex_bound(end_member, "+")
        page: dict[str, int] = {}
        if offset is not None or limit is not None:
            page = {"start": offset or 0, "num": limit if limit is not None else -1}
        if descending:
            result = await self.redis.zrevrangebylex(self.cache_key, high, low, **page)
        else:
            result = await self.redis.zrangebylex(self.cache_key, low, high, **page)
        return list(result or [])
