"""Per-type cache definition."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from entrycache.core.constants import CACHE_KEY_SEP, DEFAULT_POOL, SOFT_DELETE_FIELD
from entrycache.domain.enums import StorageMode
from entrycache.domain.exceptions import CacheConfigurationError
from entrycache.domain.protocols import CacheHooksProtocol, DataSource
from entrycache.infrastructure.cache.hooks import NO_HOOKS
from entrycache.infrastructure.cache.keys import entry_key


@dataclass(frozen=True)
class EntryDefinition:
    """Everything the engine needs to know about one entity type.

    Attributes:
        namespace: Key prefix; cache key is <namespace>:<pk>.
        source: Authoritative data source (required for rebuilds).
        storage_mode: BLOB or FIELD_MAP.
        ttl: Base TTL in seconds; None uses settings.cache_default_ttl, <= 0 never expires.
        pool: Default pool identifier for entries of this type.
        pk_field: Name of the primary-key field inside the record.
        int_fields: Extra fields coerced to int on read (status/sort always are).
        strip_fields: Fields removed on read (soft-delete marker by default).
        allow_empty_pk: Allow an empty pk (process-wide singleton entries).
        hooks: Side-effect strategy (see CacheHooks).
        key_builder: Optional (namespace, pk) -> key replacing the default format.
    """

    namespace: str
    source: DataSource | None = None
    storage_mode: StorageMode = StorageMode.FIELD_MAP
    ttl: int | None = None
    pool: str = DEFAULT_POOL
    pk_field: str = "id"
    int_fields: tuple[str, ...] = ()
    strip_fields: tuple[str, ...] = (SOFT_DELETE_FIELD,)
    allow_empty_pk: bool = False
    hooks: CacheHooksProtocol = field(default=NO_HOOKS)
    key_builder: Callable[[str, Any], str] | None = None

    def __post_init__(self) -> None:
        if not self.namespace or CACHE_KEY_SEP in self.namespace:
            raise CacheConfigurationError(
                f"namespace must be non-empty and must not contain {CACHE_KEY_SEP!r}",
                namespace=self.namespace,
            )
        if not isinstance(self.storage_mode, StorageMode):
            raise CacheConfigurationError(
                f"storage_mode must be one of {StorageMode.values()}",
                storage_mode=self.storage_mode,
            )

    @property
    def is_blob(self) -> bool:
        return self.storage_mode is StorageMode.BLOB

    def build_key(self, pk: Any) -> str:
        """Cache key for pk."""
        if self.key_builder is not None:
            return self.key_builder(self.namespace, pk)
        return entry_key(self.namespace, pk)
