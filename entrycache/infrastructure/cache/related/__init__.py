"""Collection caches reachable through CacheEntry.get_related()."""

from entrycache.infrastructure.cache.related.base import CollectionCache
from entrycache.infrastructure.cache.related.geo import GeoCache
from entrycache.infrastructure.cache.related.list_cache import ListCache
from entrycache.infrastructure.cache.related.sorted_set import SortedSetCache
from entrycache.infrastructure.cache.related.unsorted_set import UnsortedSetCache

__all__ = [
    "CollectionCache",
    "GeoCache",
    "ListCache",
    "SortedSetCache",
    "UnsortedSetCache",
]
