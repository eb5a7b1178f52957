"""Key format and read-side normalization tests."""

import pytest

from entrycache.infrastructure.cache.keys import (
    entry_key,
    lock_key,
    namespace_prefix,
    tombstone_key,
)
from entrycache.infrastructure.cache.normalization import filter_keys, normalize_detail


def test_entry_key_and_suffixes() -> None:
    key = entry_key("widget", 42)
    assert key == "widget:42"
    assert tombstone_key(key) == "widget:42.null"
    assert lock_key(key) == "widget:42.lock"
    assert namespace_prefix("widget") == "widget:"


@pytest.mark.parametrize("namespace", ["", "a:b"])
def test_invalid_namespace_rejected(namespace) -> None:
    with pytest.raises(ValueError):
        entry_key(namespace, 1)


def test_filter_keys() -> None:
    assert filter_keys({"a": 1, "b": 2}, ["b", "c"]) == {"b": 2}
    assert filter_keys(None, ["a"]) == {}


def test_normalize_detail_coerces_and_strips() -> None:
    detail = {
        "status": "1",
        "sort": "2.0",
        "views": "7",
        "score": "n/a",
        "deleted_at": "2024-01-01",
        "name": "x",
    }

    result = normalize_detail(detail, int_fields=("views", "score"), strip_fields=("deleted_at",))

    assert result is detail
    assert result == {"status": 1, "sort": 2, "views": 7, "score": 0, "name": "x"}


def test_normalize_detail_leaves_none_and_missing_alone() -> None:
    assert normalize_detail({"status": None}) == {"status": None}
    assert normalize_detail({}) == {}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("42", 42), ("-3", -3), (42, 42), ("007", "007"), ("abc", "abc"), ("", "")],
)
def test_normalize_detail_restores_integer_pk(raw, expected) -> None:
    assert normalize_detail({"id": raw}, int_pk_field="id") == {"id": expected}
