"""Cache: entry engine, batch fetch, stampede lock and Redis plumbing.

CacheEntry is the read-through/write-through controller for one entity;
get_many is its batch counterpart. Key format is in keys.py (DRY).
"""

from entrycache.infrastructure.cache.batch import get_many
from entrycache.infrastructure.cache.definition import EntryDefinition
from entrycache.infrastructure.cache.entry import CacheEntry
from entrycache.infrastructure.cache.gateway import StoreGateway
from entrycache.infrastructure.cache.hooks import NO_HOOKS, CacheHooks
from entrycache.infrastructure.cache.keys import entry_key, lock_key, tombstone_key
from entrycache.infrastructure.cache.lock import StampedeLock
from entrycache.infrastructure.cache.provider import (
    RedisClientProvider,
    get_redis_provider,
    set_redis_provider,
)

__all__ = [
    "CacheEntry",
    "CacheHooks",
    "EntryDefinition",
    "NO_HOOKS",
    "RedisClientProvider",
    "StampedeLock",
    "StoreGateway",
    "entry_key",
    "get_many",
    "get_redis_provider",
    "lock_key",
    "set_redis_provider",
    "tombstone_key",
]
