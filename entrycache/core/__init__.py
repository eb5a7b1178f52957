"""Core: config, constants, and runtime bootstrap.

Single place for settings and shared constants.
"""

from entrycache.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
