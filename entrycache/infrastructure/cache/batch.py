"""Batch fetch: many entities of one type in one pipelined round trip."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from entrycache.core.config import Settings, get_settings
from entrycache.domain.protocols import StoreProvider
from entrycache.infrastructure.cache.codec import loads_blob
from entrycache.infrastructure.cache.definition import EntryDefinition
from entrycache.infrastructure.cache.entry import CacheEntry
from entrycache.infrastructure.cache.lock import StampedeLock
from entrycache.infrastructure.cache.normalization import filter_keys
from entrycache.infrastructure.cache.provider import get_redis_provider
from entrycache.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)


def _decode(definition: EntryDefinition, columns: list[str] | None, raw: Any) -> dict[str, Any] | None:
    """Turn one pipeline reply into a mapping; None means the entity is not cached."""
    if definition.is_blob:
        return loads_blob(raw)
    if columns:
        detail = {f: v for f, v in zip(columns, raw or []) if v is not None}
        return detail or None
    return raw or None


@traced("entrycache.get_many")
async def get_many(
    definition: EntryDefinition,
    ids: Iterable[Any],
    fields: Iterable[str] | None = None,
    key_field: str | None = None,
    *,
    pool: str | None = None,
    provider: StoreProvider | None = None,
    lock: StampedeLock | None = None,
    settings: Settings | None = None,
) -> dict[Any, dict[str, Any]] | list[dict[str, Any]]:
    """Fetch several entities, rebuilding misses one by one.

    All cache reads go out in a single non-transactional pipeline. Each miss
    then takes the single-entry rebuild path (tombstone check and stampede
    lock), so misses are not batched. Ids that resolve to nothing are left out.

    Args:
        definition: Entity type.
        ids: Primary keys, in the order results should follow.
        fields: Optional projection; the pk field is always added to it.
        key_field: Key the result by this field's value.
        pool: Pool identifier; defaults to definition.pool.
        provider: Store client provider; defaults to the process-wide one.
        lock: Stampede lock shared by the fallback rebuilds.
        settings: Settings; defaults to get_settings().

    Returns:
        A dict keyed by key_field when it was requested, is part of the
        projection, and every resolved item carries it; otherwise a list in
        id order.

    Raises:
        CacheBusyError: If a fallback rebuild could not take its lock.
    """
    settings = settings or get_settings()
    provider = provider or get_redis_provider()
    pool = pool or definition.pool
    lock = lock or StampedeLock(provider, retry_interval=settings.lock_retry_interval)

    entries = [
        CacheEntry(definition, pk, pool=pool, provider=provider, lock=lock, settings=settings)
        for pk in ids
    ]
    entries = [entry for entry in entries if entry.has_pk()]
    if not entries:
        return []

    columns = list(fields) if fields else None
    if columns and definition.pk_field not in columns:
        columns.append(definition.pk_field)
    add_span_attributes(namespace=definition.namespace, pool=pool, count=len(entries))

    async with provider.get(pool).pipeline(transaction=False) as pipe:
        for entry in entries:
            if definition.is_blob:
                pipe.get(entry.cache_key)
            elif columns:
                pipe.hmget(entry.cache_key, columns)
            else:
                pipe.hgetall(entry.cache_key)
        replies = await pipe.execute()

    items: list[dict[str, Any]] = []
    misses = 0
    for entry, raw in zip(entries, replies):
        detail = _decode(definition, columns, raw)
        if detail is None:
            misses += 1
            detail = await entry.get_detail_where_no_cache()
        if not detail:
            continue
        if columns:
            detail = filter_keys(detail, columns)
        items.append(entry.normalize(dict(detail)))

    logger.debug(
        "Batch %s: %s requested, %s missed, %s resolved",
        definition.namespace,
        len(entries),
        misses,
        len(items),
    )
    if key_field and (columns is None or key_field in columns):
        if all(key_field in item for item in items):
            return {item[key_field]: item for item in items}
    return items
