"""Cache entry engine: read-through / write-through cache for one entity.

A CacheEntry is a short-lived handle bound to one primary key. It reads
the entity from Redis, rebuilds it from the data source on a miss (under
the stampede lock, with tombstones for confirmed absence), and supports
partial reads and writes in field-map mode.

Every persist applies a jittered TTL so entries written together do not
expire together.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

import redis.asyncio as redis

from entrycache.core.config import Settings, get_settings
from entrycache.domain.exceptions import CacheConfigurationError
from entrycache.domain.protocols import StoreProvider
from entrycache.infrastructure.cache.codec import (
    dumps_blob,
    loads_blob,
    stored_fields,
    to_mapping,
)
from entrycache.infrastructure.cache.definition import EntryDefinition
from entrycache.infrastructure.cache.gateway import StoreGateway
from entrycache.infrastructure.cache.keys import lock_key, namespace_prefix, tombstone_key
from entrycache.infrastructure.cache.lock import StampedeLock
from entrycache.infrastructure.cache.normalization import filter_keys, normalize_detail
from entrycache.infrastructure.cache.provider import get_redis_provider
from entrycache.shared.context import scoped_instance
from entrycache.shared.telemetry.tracing import add_span_attributes, add_span_event, traced

R = TypeVar("R")

logger = logging.getLogger(__name__)

Number = int | float


class CacheEntry:
    """Controller for one entity's cached state.

    Read paths return an empty mapping (or None where documented) for
    missing entities instead of raising; only lock contention
    (CacheBusyError) and wiring errors propagate.

    Blob-mode field mutations are read-modify-write cycles; they run under
    the same lock as rebuilds so concurrent mutators do not lose updates.
    Field-map mutations run as one MULTI that also checks the entry still
    exists, and take no lock.
    """

    def __init__(
        self,
        definition: EntryDefinition,
        pk: Any = "",
        *,
        pool: str | None = None,
        provider: StoreProvider | None = None,
        lock: StampedeLock | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Bind a handle to pk.

        Args:
            definition: Entity type description.
            pk: Primary key value; None or "" is empty.
            pool: Pool identifier; defaults to definition.pool.
            provider: Store client provider; defaults to the process-wide one.
            lock: Stampede lock; defaults to one built on provider.
            settings: Settings; defaults to get_settings().
        """
        self.definition = definition
        self.settings = settings or get_settings()
        self._pk = pk
        self._pool = pool or definition.pool
        self._provider = provider
        self._lock = lock
        self._cache_key = definition.build_key(pk)
        self._detail: dict[str, Any] | None = None
        self._related: dict[type, Any] = {}

    @classmethod
    def get_instance(
        cls, definition: EntryDefinition, pk: Any = "", **kwargs: Any
    ) -> CacheEntry:
        """Return the handle for (definition, pk, pool) from the active entry scope.

        Handles built with a different provider, lock or settings object are
        kept apart. Outside entrycache.shared.context.entry_scope() a new handle
        is built.
        """
        key = (
            cls,
            id(definition),
            pk,
            kwargs.get("pool") or definition.pool,
            id(kwargs.get("provider")),
            id(kwargs.get("lock")),
            id(kwargs.get("settings")),
        )
        return scoped_instance(key, lambda: cls(definition, pk, **kwargs))

    @classmethod
    async def clear_all(
        cls,
        definition: EntryDefinition,
        *,
        pool: str | None = None,
        provider: StoreProvider | None = None,
    ) -> int:
        """Delete every key under the definition's namespace (entries, tombstones, locks).

        Only covers keys built by the default key format.
        """
        provider = provider or get_redis_provider()
        gateway = StoreGateway(provider.get(pool or definition.pool))
        return await gateway.clear_keys(namespace_prefix(definition.namespace))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.definition.namespace!r}, pk={self._pk!r}, pool={self._pool!r})"

    # ---- Wiring ----

    @property
    def pk(self) -> Any:
        return self._pk

    @property
    def pool(self) -> str:
        return self._pool

    @property
    def cache_key(self) -> str:
        return self._cache_key

    @property
    def tombstone_key(self) -> str:
        return tombstone_key(self._cache_key)

    @property
    def lock_key(self) -> str:
        return lock_key(self._cache_key)

    @property
    def detail(self) -> dict[str, Any] | None:
        """In-memory mirror of the last read or write (may be stale)."""
        return self._detail

    @property
    def provider(self) -> StoreProvider:
        if self._provider is None:
            self._provider = get_redis_provider()
        return self._provider

    @property
    def lock(self) -> StampedeLock:
        if self._lock is None:
            self._lock = StampedeLock(
                self.provider, retry_interval=self.settings.lock_retry_interval
            )
        return self._lock

    @property
    def redis(self) -> redis.Redis:
        return self.provider.get(self._pool)

    @property
    def gateway(self) -> StoreGateway:
        return StoreGateway(self.redis)

    def has_pk(self) -> bool:
        if self.definition.allow_empty_pk:
            return True
        return self._pk is not None and self._pk != ""

    # ---- Reads ----

    async def get_detail(self, fields: Iterable[str] | None = None) -> dict[str, Any]:
        """Return the entity (or the requested fields), rebuilding it on a miss.

        Returns an empty dict when the pk is empty or the entity does not exist.

        Raises:
            CacheBusyError: If a rebuild was needed and the lock stayed busy.
        """
        if not self.has_pk():
            return {}
        columns = list(fields) if fields else None
        detail = await self._read_cache(columns)
        if detail is None:
            logger.debug("Cache MISS: %s", self._cache_key)
            detail = await self.get_detail_where_no_cache()
            if detail and columns:
                detail = filter_keys(detail, columns)
        else:
            logger.debug("Cache HIT: %s", self._cache_key)
        self._detail = self.normalize(dict(detail or {}))
        return self._detail

    async def get_field(self, name: str) -> Any:
        """Return one field of the entity, or None."""
        if not self.has_pk():
            return None
        detail = await self.get_detail()
        return detail.get(name)

    async def get_columns(self, fields: Iterable[str]) -> dict[str, Any] | None:
        """Like get_detail(fields) but returns None instead of an empty dict."""
        if not self.has_pk():
            return None
        detail = await self.get_detail(fields)
        return detail or None

    async def exists(self) -> bool:
        """Return True if the entry is in the store (tombstones are not consulted)."""
        if not self.has_pk():
            return False
        return await self.gateway.exists(self._cache_key)

    async def is_empty(self) -> bool:
        """Return True if get_detail() yields nothing."""
        return not await self.get_detail()

    async def get_detail_where_no_cache(self) -> dict[str, Any] | None:
        """Rebuild path for a miss: tombstone check, then a locked re-check and rebuild.

        Returns None when the entity is absent (tombstone present or the source
        reports absence).

        Raises:
            CacheBusyError: If the rebuild lock was not acquired within the budget.
        """
        if not self.has_pk():
            return None
        if await self.has_tombstone():
            logger.debug("Cache NULL: %s", self._cache_key)
            return None

        async def rebuild() -> dict[str, Any] | None:
            # another holder may have rebuilt the entry while we waited
            self._detail = await self._read_cache()
            if self._detail is None and not await self.has_tombstone():
                await self.build_cache()
            return self._detail

        return await self.lock.with_lock(
            self._pool,
            self._cache_key,
            self.settings.lock_ttl,
            self.settings.lock_max_tries,
            rebuild,
        )

    async def _read_cache(self, fields: list[str] | None = None) -> dict[str, Any] | None:
        """Read from the store. None means "not cached"; {} is a cached empty record."""
        client = self.redis
        if self.definition.is_blob:
            detail = loads_blob(await client.get(self._cache_key))
            if detail is not None and fields:
                detail = filter_keys(detail, fields)
            return detail
        if fields:
            values = await client.hmget(self._cache_key, fields)
            detail = {f: v for f, v in zip(fields, values) if v is not None}
            return detail or None
        return await client.hgetall(self._cache_key) or None

    def normalize(self, detail: dict[str, Any]) -> dict[str, Any]:
        """Read-side normalization shared by single and batch reads (in place)."""
        int_pk = isinstance(self._pk, int) and not isinstance(self._pk, bool)
        return normalize_detail(
            detail,
            self.definition.int_fields,
            self.definition.strip_fields,
            self.definition.pk_field if int_pk else None,
        )

    # ---- Rebuild and replace ----

    @traced("entrycache.build_cache")
    async def build_cache(self) -> dict[str, Any] | None:
        """Replace the cached state with the source's current record.

        Writes a tombstone and returns None when the source reports absence.

        Raises:
            CacheConfigurationError: If the definition has no data source.
        """
        if not self.has_pk():
            return None
        source = self.definition.source
        if source is None:
            raise CacheConfigurationError(
                f"No data source configured for {self.definition.namespace!r}",
                namespace=self.definition.namespace,
            )
        add_span_attributes(
            namespace=self.definition.namespace, pk=str(self._pk), pool=self._pool
        )
        await self.clear_cache()
        record = await source.load_current(self._pk)
        if record is None:
            await self._set_tombstone(self.settings.cache_tombstone_ttl)
            add_span_event("tombstone")
            logger.info("Cache rebuild %s: not found in source, tombstoned", self._cache_key)
            return None
        self._detail = to_mapping(record)
        await self.definition.hooks.on_update(self, self._detail)
        await self._save_cache()
        logger.info("Cache rebuild %s: %s field(s)", self._cache_key, len(self._detail or {}))
        return self._detail

    async def set_detail(self, value: Any) -> None:
        """Replace the cached state with value (no source query, no lock)."""
        if not self.has_pk():
            return
        self._detail = to_mapping(value) if value is not None else {}
        await self.definition.hooks.on_update(self, self._detail)
        await self._save_cache()

    async def _save_cache(self) -> None:
        """Persist the mirror as a full replacement with a jittered TTL.

        Runs before_save first and after_save last. Clears the tombstone. An
        empty record is kept as an empty blob, or, in field-map mode where Redis
        cannot hold an empty hash, as a tombstone.

        The mirror is left holding the stored form of the record, so a rebuild
        hands back exactly what a later cache hit reads.
        """
        hooks = self.definition.hooks
        data = await hooks.before_save(self, dict(self._detail or {}))
        client = self.redis
        if not data and not self.definition.is_blob:
            self._detail = {}
            await client.delete(self._cache_key)
            await self._set_tombstone(self.settings.cache_empty_ttl)
            return
        ttl = self._ttl(empty=not data)
        async with client.pipeline(transaction=True) as pipe:
            pipe.delete(self.tombstone_key)
            if self.definition.is_blob:
                payload = dumps_blob(data)
                self._detail = loads_blob(payload)
                pipe.set(self._cache_key, payload, ex=ttl)
            else:
                self._detail = stored_fields(data)
                pipe.delete(self._cache_key)
                pipe.hset(self._cache_key, mapping=self._detail)
                if ttl:
                    pipe.expire(self._cache_key, ttl)
            await pipe.execute()
        logger.debug("Cache SET: %s (TTL: %ss)", self._cache_key, ttl)
        await hooks.after_save(self)

    def _ttl(self, empty: bool = False) -> int | None:
        """Expiry for a persist: base (or empty-result) TTL plus 0..jitter seconds.

        None when the type's TTL is <= 0 (never expire).
        """
        base = self.definition.ttl if self.definition.ttl is not None else self.settings.cache_default_ttl
        if base <= 0:
            return None
        if empty:
            base = self.settings.cache_empty_ttl
        return base + random.randint(0, self.settings.cache_ttl_jitter)

    # ---- Invalidation ----

    async def clear_cache(self) -> int:
        """Delete the entry and forget the mirror. Leaves the tombstone alone.

        Returns:
            Number of keys deleted (0 when nothing was cached).
        """
        if not self.has_pk():
            return 0
        self._detail = None
        deleted = int(await self.redis.delete(self._cache_key))
        if deleted:
            logger.debug("Cache DELETE: %s", self._cache_key)
        return deleted

    async def del_cache(self) -> int:
        """clear_cache() followed by the on_delete hook."""
        if not self.has_pk():
            return 0
        deleted = await self.clear_cache()
        await self.definition.hooks.on_delete(self)
        return deleted

    # ---- Field mutation ----

    async def update_field_cache(self, field: str, value: Any) -> bool:
        """Set one existing field and refresh the TTL.

        Returns False when field is not in the current detail (nothing is
        written), or in field-map mode when the entry expired before the write.
        """
        if not self.has_pk():
            return False
        detail = await self.get_detail()
        if field not in detail:
            return False
        if self.definition.is_blob:
            def apply(current: dict[str, Any]) -> bool:
                current[field] = value
                return True

            updated = await self._locked_blob_update(apply)
            mirrored = (updated or {}).get(field, value)
        else:
            stored = stored_fields({field: value})
            written = await self._write_if_cached(
                lambda pipe: pipe.hset(self._cache_key, mapping=stored)
            )
            if written is None:
                return False
            mirrored = stored[field]
        detail[field] = mirrored
        self._detail = self.normalize(detail)
        await self.definition.hooks.on_update(self, {field: value})
        await self.definition.hooks.after_save(self)
        return True

    async def update_mul_field_cache(self, fields: dict[str, Any]) -> bool:
        """Set several existing fields at once through a full save.

        Fields not already in the current detail are dropped. Returns False when
        nothing is left to write or the entity does not exist.
        """
        if not self.has_pk():
            return False
        detail = await self.get_detail()
        if not detail:
            return False
        changes = {k: v for k, v in fields.items() if k in detail}
        if not changes:
            return False
        self._detail = {**detail, **changes}
        await self.definition.hooks.on_update(self, changes)
        if self.definition.is_blob:
            def apply(current: dict[str, Any]) -> bool:
                current.update(changes)
                return True

            await self._locked_blob_update(apply, full_save=True)
        else:
            await self._save_cache()
        return True

    async def incr(self, field: str, delta: int = 1) -> int | bool | None:
        """Atomically add delta to an integer field.

        Rebuilds (without incrementing) when nothing is cached and returns the
        rebuilt value. Returns False when the field is not cached.
        """
        return await self._increment(field, delta, as_float=False)

    async def incr_by_float(self, field: str, delta: float = 1.0) -> float | bool | None:
        """Float variant of incr()."""
        return await self._increment(field, delta, as_float=True)

    async def _increment(self, field: str, delta: Number, as_float: bool) -> Any:
        if not self.has_pk():
            return None
        cast: Callable[[Any], Number] = float if as_float else int
        if not await self.exists():
            return await self._rebuilt_value(field, cast)

        if self.definition.is_blob:

            def bump(current: dict[str, Any]) -> bool:
                if field not in current:
                    return False
                current[field] = cast(current[field] or 0) + delta
                return True

            updated = await self._locked_blob_update(bump)
            if updated is None:
                return False
            value = updated[field]
        else:
            client = self.redis
            if await client.hget(self._cache_key, field) is None:
                return False
            command = "hincrbyfloat" if as_float else "hincrby"
            results = await self._write_if_cached(
                lambda pipe: getattr(pipe, command)(self._cache_key, field, delta)
            )
            if results is None:
                return await self._rebuilt_value(field, cast)
            value = cast(results[0])
            if self._detail is not None:
                self._detail = self.normalize({**self._detail, **stored_fields({field: value})})

        await self.definition.hooks.on_update(self, {field: value})
        await self.definition.hooks.after_save(self)
        return value

    async def _rebuilt_value(self, field: str, cast: Callable[[Any], Number]) -> Any:
        await self.build_cache()
        value = (self._detail or {}).get(field)
        return cast(value) if isinstance(value, str) and value else value

    async def _write_if_cached(self, queue: Callable[[Any], Any]) -> list[Any] | None:
        """Run a hash write in MULTI with an EXISTS check and a TTL refresh.

        If the entry expired after it was read, the write has just created a
        partial hash; that key is deleted again and None is returned. A full
        rebuild landing between the MULTI and the DEL is dropped too, which
        only costs a later miss.

        Returns:
            Replies of the commands queue added, or None.
        """
        ttl = self._ttl()
        client = self.redis
        async with client.pipeline(transaction=True) as pipe:
            pipe.exists(self._cache_key)
            queue(pipe)
            if ttl:
                pipe.expire(self._cache_key, ttl)
            existed, *replies = await pipe.execute()
        if not existed:
            await client.delete(self._cache_key)
            self._detail = None
            logger.debug("Cache write on expired key discarded: %s", self._cache_key)
            return None
        return replies

    async def _locked_blob_update(
        self,
        mutate: Callable[[dict[str, Any]], bool],
        full_save: bool = False,
    ) -> dict[str, Any] | None:
        """Read-modify-write the blob under the entry's lock.

        mutate edits the freshly read value in place and returns False to abort.
        With full_save the write goes through _save_cache (hooks, tombstone
        removal); otherwise the blob is rewritten with a refreshed TTL only.

        Returns:
            The written mapping, or None if mutate aborted.

        Raises:
            CacheBusyError: If the lock stayed busy.
        """

        async def body() -> dict[str, Any] | None:
            current = loads_blob(await self.redis.get(self._cache_key))
            if current is None:
                # expired since it was read; fall back to the mirror
                current = dict(self._detail or {})
            if mutate(current) is False:
                return None
            self._detail = current
            if full_save:
                await self._save_cache()
            else:
                payload = dumps_blob(current)
                await self.redis.set(self._cache_key, payload, ex=self._ttl())
                self._detail = loads_blob(payload)
            return self._detail

        return await self.lock.with_lock(
            self._pool,
            self._cache_key,
            self.settings.lock_ttl,
            self.settings.lock_max_tries,
            body,
        )

    # ---- Tombstones ----

    async def has_tombstone(self) -> bool:
        """Return True if the entity was recently confirmed absent."""
        return await self.gateway.exists(self.tombstone_key)

    async def remove_tombstone(self) -> int:
        """Drop the negative-cache marker (e.g. right after the entity was created)."""
        return await self.gateway.delete(self.tombstone_key)

    async def _set_tombstone(self, ttl: int) -> None:
        ttl = ttl + random.randint(0, self.settings.cache_ttl_jitter)
        await self.redis.set(self.tombstone_key, 1, ex=ttl)
        logger.debug("Cache NULL SET: %s (TTL: %ss)", self.tombstone_key, ttl)

    # ---- Related collection caches ----

    def get_related(self, adapter_cls: type[R]) -> R:
        """Return the collection adapter of type adapter_cls bound to this pk and pool.

        Built on first use and reused for the lifetime of this handle.
        """
        if adapter_cls not in self._related:
            self._related[adapter_cls] = adapter_cls(  # type: ignore[call-arg]
                self._pk, pool=self._pool, provider=self.provider
            )
        return self._related[adapter_cls]
