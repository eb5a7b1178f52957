"""Redis client provider: one client per pool identifier.

Clients are created lazily on first use and reused for the process
lifetime. The engine receives a provider instead of looking clients up
globally, so tests can inject an in-memory store.
"""

from __future__ import annotations

import logging
import threading

import redis.asyncio as redis

from entrycache.core.config import Settings, get_settings
from entrycache.core.constants import DEFAULT_POOL
from entrycache.domain.exceptions import CacheConfigurationError
from entrycache.domain.protocols import StoreProvider

logger = logging.getLogger(__name__)


class RedisClientProvider:
    """Lazily builds and caches redis.asyncio clients keyed by pool identifier.

    The "default" pool uses redis_host/redis_port/redis_db/redis_password;
    any other pool must be listed in settings.redis_pools (name -> URL).
    Call close() at shutdown.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._clients: dict[str, redis.Redis] = {}
        self._lock = threading.Lock()

    def get(self, pool: str = DEFAULT_POOL) -> redis.Redis:
        """Return the client for pool, creating it on first use.

        Raises:
            CacheConfigurationError: If pool is not configured.
        """
        client = self._clients.get(pool)
        if client is not None:
            return client
        with self._lock:
            client = self._clients.get(pool)
            if client is None:
                client = self._create(pool)
                self._clients[pool] = client
        return client

    def _create(self, pool: str) -> redis.Redis:
        s = self.settings
        common = {
            "decode_responses": True,
            "socket_connect_timeout": s.redis_socket_timeout,
            "socket_timeout": s.redis_socket_timeout,
            "socket_keepalive": True,
            "max_connections": s.redis_max_connections,
        }
        if pool == DEFAULT_POOL:
            logger.info("Redis pool %s -> %s:%s/%s", pool, s.redis_host, s.redis_port, s.redis_db)
            return redis.Redis(
                host=s.redis_host,
                port=s.redis_port,
                db=s.redis_db,
                password=s.redis_password.get_secret_value() if s.redis_password else None,
                **common,
            )
        url = s.redis_pools.get(pool)
        if not url:
            raise CacheConfigurationError(
                f"Redis pool {pool!r} is not configured (set REDIS_POOLS)", pool=pool
            )
        logger.info("Redis pool %s -> %s", pool, url)
        return redis.from_url(url, **common)

    @property
    def pools(self) -> list[str]:
        """Pool identifiers with a live client."""
        return list(self._clients)

    async def close(self) -> None:
        """Close every client. Call on shutdown."""
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()
        for pool, client in clients:
            try:
                await client.aclose()
            except redis.RedisError:
                logger.exception("Error closing Redis pool %s", pool)
            else:
                logger.info("Redis pool %s closed", pool)


_provider: StoreProvider | None = None
_provider_lock = threading.RLock()


def get_redis_provider() -> StoreProvider:
    """Return the process-wide provider, creating a RedisClientProvider on first use."""
    global _provider
    with _provider_lock:
        if _provider is None:
            _provider = RedisClientProvider()
        return _provider


def set_redis_provider(provider: StoreProvider | None) -> None:
    """Install (or with None, reset) the process-wide provider."""
    global _provider
    with _provider_lock:
        _provider = provider
