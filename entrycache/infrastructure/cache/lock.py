"""Stampede lock: short-TTL advisory mutex keyed per cache key.

Reduces concurrent rebuilds of one key to a single source query. It guards
no data structure itself; if the holder dies, the lock's own TTL releases
it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from entrycache.core.config import get_settings
from entrycache.domain.exceptions import CacheBusyError
from entrycache.domain.protocols import StoreProvider
from entrycache.infrastructure.cache.gateway import StoreGateway
from entrycache.infrastructure.cache.keys import lock_key
from entrycache.infrastructure.cache.provider import get_redis_provider

T = TypeVar("T")

logger = logging.getLogger(__name__)


class StampedeLock:
    """Set-if-absent lock with bounded retry-with-backoff acquisition."""

    def __init__(
        self,
        provider: StoreProvider | None = None,
        retry_interval: float | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            provider: Store client provider; defaults to the process-wide one.
            retry_interval: Seconds to sleep between attempts; defaults to
                settings.lock_retry_interval (100ms).
        """
        self._provider = provider
        self.retry_interval = (
            retry_interval if retry_interval is not None else get_settings().lock_retry_interval
        )

    @property
    def provider(self) -> StoreProvider:
        if self._provider is None:
            self._provider = get_redis_provider()
        return self._provider

    async def with_lock(
        self,
        pool: str,
        key: str,
        lock_ttl: int,
        max_tries: int,
        body: Callable[[], Awaitable[T]],
    ) -> T:
        """Run body while holding <key>.lock and return its result.

        Makes max(1, max_tries) acquisition attempts, sleeping retry_interval
        between them. The lock is deleted after body finishes, even if it
        raises.

        Args:
            pool: Pool identifier of the store holding the lock.
            key: Cache key being protected.
            lock_ttl: Seconds the lock key lives.
            max_tries: Acquisition budget; 0 means a single non-blocking attempt.
            body: Async callable run exactly once when the lock is held.

        Raises:
            CacheBusyError: If the lock was never acquired; body did not run.
        """
        gateway = StoreGateway(self.provider.get(pool))
        name = lock_key(key)
        remaining = max_tries
        attempts = 0
        while True:
            attempts += 1
            if await gateway.set_nx_ex(name, 1, lock_ttl):
                if attempts > 1:
                    logger.debug("Lock %s acquired after %s attempts", name, attempts)
                try:
                    return await body()
                finally:
                    await gateway.delete(name)
            remaining -= 1
            if remaining <= 0:
                break
            await asyncio.sleep(self.retry_interval)
        logger.warning("Lock %s busy after %s attempts", name, attempts)
        raise CacheBusyError(key, attempts)
