"""Cache key builders. Single place for key format (DRY).

Namespaces must not contain CACHE_KEY_SEP to avoid ambiguous or colliding
keys. Tombstone and lock keys are derived from the cache key by suffix.
"""

from typing import Any

from entrycache.core.constants import CACHE_KEY_SEP, LOCK_SUFFIX, TOMBSTONE_SUFFIX


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def entry_key(namespace: str, pk: Any) -> str:
    """Cache key for one entity: <namespace>:<pk>."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}{pk}"


def namespace_prefix(namespace: str) -> str:
    """Prefix shared by every entry key of a namespace (for SCAN)."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}"


def tombstone_key(cache_key: str) -> str:
    """Negative-cache marker key for cache_key."""
    return f"{cache_key}{TOMBSTONE_SUFFIX}"


def lock_key(cache_key: str) -> str:
    """Rebuild lock key for cache_key."""
    return f"{cache_key}{LOCK_SUFFIX}"
