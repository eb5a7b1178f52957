"""Shared utilities: request-scoped registry and telemetry. No cache logic."""

from entrycache.shared.context import entry_scope, in_entry_scope, scoped_instance

__all__ = [
    "entry_scope",
    "in_entry_scope",
    "scoped_instance",
]
