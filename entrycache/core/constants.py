"""Core constants: key suffixes and shared literal values.

Single source of truth for store key structure. The suffixes must stay
bit-compatible with existing deployments that share the same Redis.
"""

# Delimiter between namespace and primary key
CACHE_KEY_SEP = ":"

# Negative-cache marker: <cache_key>.null
TOMBSTONE_SUFFIX = ".null"

# Rebuild lock: <cache_key>.lock
LOCK_SUFFIX = ".lock"

DEFAULT_POOL = "default"

# Fields always coerced to int on read
DEFAULT_INT_FIELDS = ("status", "sort")

# Soft-delete marker stripped on read
SOFT_DELETE_FIELD = "deleted_at"

# Keys per UNLINK batch when clearing by prefix
CLEAR_CHUNK_SIZE = 500
