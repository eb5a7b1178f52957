"""Value encoding for the two storage modes and record-to-mapping conversion."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable


def dumps_blob(data: Mapping[str, Any]) -> str:
    """Serialize a whole record for BLOB mode (compact JSON; unknown types via str)."""
    return json.dumps(dict(data), separators=(",", ":"), ensure_ascii=False, default=str)


def loads_blob(raw: str | bytes | None) -> dict[str, Any] | None:
    """Deserialize a BLOB value. Missing key or JSON null gives None."""
    if raw is None:
        return None
    value = json.loads(raw)
    if value is None:
        return None
    if value == []:
        # array-based writers encode an empty record as "[]"
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"Cached blob must be a JSON object, got {type(value).__name__}")
    return value


def encode_field(value: Any) -> str | int | float:
    """Encode one value for HSET.

    Redis hashes hold strings only: None becomes "", booleans "1"/"0",
    numbers and strings pass through, anything else is stored as JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (str, int, float)):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def encode_fields(data: Mapping[str, Any]) -> dict[str, str | int | float]:
    """Encode a whole mapping for HSET mapping=."""
    return {str(k): encode_field(v) for k, v in data.items()}


def to_mapping(record: Any) -> dict[str, Any]:
    """Convert a data-source record to a plain dict.

    Accepts mappings, pydantic models, dataclass instances, SQLAlchemy ORM
    instances, JSON object text, and plain objects (public attributes).

    Raises:
        TypeError: If the record cannot be represented as a mapping.
    """
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, BaseModel):
        return record.model_dump()
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    if isinstance(record, (str, bytes)):
        value = json.loads(record)
        if not isinstance(value, dict):
            raise TypeError(f"Record JSON must be an object, got {type(value).__name__}")
        return value
    try:
        state = sa_inspect(record)
    except NoInspectionAvailable:
        state = None
    if state is not None and hasattr(state, "mapper"):
        return {attr.key: getattr(record, attr.key) for attr in state.mapper.column_attrs}
    if hasattr(record, "__dict__"):
        return {k: v for k, v in vars(record).items() if not k.startswith("_")}
    raise TypeError(f"Cannot convert {type(record).__name__} to a mapping")


def stored_fields(data: Mapping[str, Any]) -> dict[str, str]:
    """Return data as HGETALL will give it back (every value a string)."""
    return {k: v if isinstance(v, str) else repr(v) for k, v in encode_fields(data).items()}
