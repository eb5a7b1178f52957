"""Domain enumerations for entrycache.

Enums represent fixed sets of values shared by the engine and its callers.
"""

from enum import Enum


class StorageMode(str, Enum):
    """How an entity's cached state is laid out in the store.

    BLOB keeps the whole record as one serialized string value. FIELD_MAP
    keeps it as a Redis hash so single fields can be read and written
    without deserializing the record.
    """

    BLOB = "blob"
    FIELD_MAP = "field_map"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid mode values as strings."""
        return [mode.value for mode in cls]
