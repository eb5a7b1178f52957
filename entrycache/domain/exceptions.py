"""Domain exceptions for entrycache.

Only contention and programmer errors are raised. Absence of an entity is
an empty result and a missing field is a False return; neither is an
exception.
"""

from typing import Any


class EntryCacheException(Exception):
    """Base exception for all entrycache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. key, attempts).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class CacheBusyError(EntryCacheException):
    """Raised when the rebuild lock could not be acquired within the retry budget.

    Transient: the caller may retry later. It says nothing about whether the
    entity exists.
    """

    def __init__(self, key: str, attempts: int) -> None:
        """Initialize with the contended cache key and the attempts made.

        Args:
            key: Cache key whose lock was contended.
            attempts: Number of acquisition attempts made.
        """
        super().__init__(
            f"System busy: could not lock {key!r} after {attempts} attempt(s)",
            "SYSTEM_BUSY",
            {"key": key, "attempts": attempts},
        )


class CacheConfigurationError(EntryCacheException):
    """Raised for invalid cache wiring (unknown pool, missing data source, bad definition)."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, "CACHE_CONFIGURATION_ERROR", details)


class SqlNotConfiguredException(EntryCacheException):
    """Raised when the SQLAlchemy data source is used but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
