"""Domain layer: enums, exceptions, and collaborator protocols.

No dependencies on infrastructure. Used by the cache engine and callers.
"""

from entrycache.domain.enums import StorageMode
from entrycache.domain.exceptions import (
    CacheBusyError,
    CacheConfigurationError,
    EntryCacheException,
    SqlNotConfiguredException,
)
from entrycache.domain.protocols import CacheHooksProtocol, DataSource, StoreProvider

__all__ = [
    # Enums
    "StorageMode",
    # Exceptions
    "CacheBusyError",
    "CacheConfigurationError",
    "EntryCacheException",
    "SqlNotConfiguredException",
    # Protocols
    "CacheHooksProtocol",
    "DataSource",
    "StoreProvider",
]
