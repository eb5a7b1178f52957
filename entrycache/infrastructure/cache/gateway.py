"""Store gateway: helper glue over raw Redis commands.

The engine issues plain GET/SET/HSET/... itself; this module holds the
few compound operations that several callers share (set-if-absent with
TTL, counters with first-hit expiry, prefix clearing, boolean EXISTS).
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as redis

from entrycache.core.constants import CLEAR_CHUNK_SIZE

logger = logging.getLogger(__name__)


class StoreGateway:
    """Thin wrapper around one pool's client.

    Each call may fail transiently; redis errors propagate to the caller.
    """

    def __init__(self, client: redis.Redis) -> None:
        self.redis = client

    async def exists(self, key: str) -> bool:
        """Return True if key exists."""
        return bool(await self.redis.exists(key))

    async def set_nx_ex(self, key: str, value: Any, ttl: int) -> bool:
        """SET key value NX EX ttl. Returns True only if the key was created."""
        return bool(await self.redis.set(key, value, nx=True, ex=ttl))

    async def expire(self, key: str, ttl: int) -> bool:
        """Set key's expiry in seconds."""
        return bool(await self.redis.expire(key, ttl))

    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""
        if not keys:
            return 0
        return int(await self.redis.delete(*keys))

    async def incr_ex(self, key: str, ttl: int) -> int:
        """Increment a counter; the first increment gives it ttl.

        If the counter is found without expiry (the EXPIRE after the first
        INCR was lost), the expiry is applied again so the counter cannot
        live forever.
        """
        count = int(await self.redis.incr(key))
        if count == 1:
            await self.redis.expire(key, ttl)
        elif await self.redis.ttl(key) == -1:
            logger.warning("Counter %s had no expiry; reapplying %ss", key, ttl)
            await self.redis.expire(key, ttl)
        return count

    async def clear_keys(self, prefix: str) -> int:
        """Delete all keys starting with prefix using SCAN + batched UNLINK (non-blocking).

        Uses scan_iter to avoid KEYS blocking; collects keys in chunks and
        UNLINKs each chunk in one non-transactional pipeline.

        Args:
            prefix: Literal key prefix (glob metacharacters are not escaped).

        Returns:
            Number of keys deleted.
        """
        deleted = 0
        chunk: list[str] = []
        async for key in self.redis.scan_iter(match=f"{prefix}*"):
            chunk.append(key)
            if len(chunk) >= CLEAR_CHUNK_SIZE:
                deleted += await self._unlink(chunk)
                chunk = []
        if chunk:
            deleted += await self._unlink(chunk)
        if deleted > 0:
            logger.info("Cache CLEAR: %s* (%s keys)", prefix, deleted)
        return deleted

    async def _unlink(self, keys: list[str]) -> int:
        async with self.redis.pipeline(transaction=False) as pipe:
            pipe.unlink(*keys)
            results = await pipe.execute()
        return sum(int(r or 0) for r in results)
