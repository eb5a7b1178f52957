"""Read-side normalization and field projection."""

from collections.abc import Iterable, Mapping
from typing import Any

from entrycache.core.constants import DEFAULT_INT_FIELDS


def filter_keys(data: Mapping[str, Any] | None, keys: Iterable[str]) -> dict[str, Any]:
    """Return only the entries of data whose key is in keys (empty dict for no data)."""
    if not data:
        return {}
    wanted = set(keys)
    return {k: v for k, v in data.items() if k in wanted}


def _to_int(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return 0


def _to_pk(value: Any) -> Any:
    if isinstance(value, str) and value.lstrip("-").isdigit() and str(int(value)) == value:
        return int(value)
    return value


def normalize_detail(
    detail: dict[str, Any],
    int_fields: Iterable[str] = (),
    strip_fields: Iterable[str] = (),
    int_pk_field: str | None = None,
) -> dict[str, Any]:
    """Coerce integer fields and drop stripped fields, in place.

    DEFAULT_INT_FIELDS ("status", "sort") are always coerced. Values that do
    not parse as a number become 0; None is left alone. int_pk_field names
    the primary-key field of an integer-keyed entity; its canonical decimal
    string form is turned back into an int.
    """
    if int_pk_field and int_pk_field in detail:
        detail[int_pk_field] = _to_pk(detail[int_pk_field])
    for field in (*DEFAULT_INT_FIELDS, *int_fields):
        if field in detail:
            detail[field] = _to_int(detail[field])
    for field in strip_fields:
        detail.pop(field, None)
    return detail
