"""entrycache: Redis read-through/write-through entity cache.

Typical use:

    widgets = EntryDefinition("widget", source=WidgetSource(), storage_mode=StorageMode.BLOB)
    async with cache_runtime():
        detail = await CacheEntry(widgets, 42).get_detail()
"""

from entrycache.core.config import Settings, get_settings
from entrycache.core.lifespan import cache_runtime
from entrycache.domain import (
    CacheBusyError,
    CacheConfigurationError,
    EntryCacheException,
    StorageMode,
)
from entrycache.infrastructure.cache import (
    CacheEntry,
    CacheHooks,
    EntryDefinition,
    RedisClientProvider,
    StampedeLock,
    get_many,
)
from entrycache.infrastructure.cache.related import (
    GeoCache,
    ListCache,
    SortedSetCache,
    UnsortedSetCache,
)
from entrycache.shared.context import entry_scope

__all__ = [
    "CacheBusyError",
    "CacheConfigurationError",
    "CacheEntry",
    "CacheHooks",
    "EntryCacheException",
    "EntryDefinition",
    "GeoCache",
    "ListCache",
    "RedisClientProvider",
    "Settings",
    "SortedSetCache",
    "StampedeLock",
    "StorageMode",
    "UnsortedSetCache",
    "cache_runtime",
    "entry_scope",
    "get_many",
    "get_settings",
]
