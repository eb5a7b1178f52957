"""get_many unit tests: one pipelined read, per-miss fallback, keyed output."""

import pytest

from entrycache.domain.enums import StorageMode
from entrycache.infrastructure.cache.batch import get_many
from entrycache.infrastructure.cache.definition import EntryDefinition
from entrycache.infrastructure.cache.entry import CacheEntry


@pytest.fixture
def source(make_source):
    return make_source({1: {"id": 1, "name": "a"}, 3: {"id": 3, "name": "c"}})


@pytest.fixture
def widgets(source) -> EntryDefinition:
    return EntryDefinition("widget", source=source, storage_mode=StorageMode.FIELD_MAP)


async def _warm(definition, provider, settings, *ids) -> None:
    for pk in ids:
        await CacheEntry(definition, pk, provider=provider, settings=settings).get_detail()


@pytest.mark.asyncio
async def test_absent_id_is_skipped_after_one_fallback(
    widgets, source, provider, fake_redis, settings
) -> None:
    """ids [1,2,3] with 2 absent everywhere: 1 and 3 in order, one rebuild attempt for 2."""
    await _warm(widgets, provider, settings, 1, 3)
    source.calls.clear()
    pipelines_before = fake_redis.pipelines_executed

    result = await get_many(widgets, [1, 2, 3], provider=provider, settings=settings)

    assert result == [{"id": 1, "name": "a"}, {"id": 3, "name": "c"}]
    assert source.calls == [2]
    assert fake_redis.pipelines_executed - pipelines_before == 1
    assert await fake_redis.exists("widget:2.null") == 1


@pytest.mark.asyncio
async def test_projection_adds_pk_and_keys_by_field(widgets, source, provider, settings) -> None:
    await _warm(widgets, provider, settings, 1, 2, 3)
    source.calls.clear()

    result = await get_many(
        widgets, [1, 2, 3], fields=["name"], key_field="id", provider=provider, settings=settings
    )

    assert result == {
        1: {"name": "a", "id": 1},
        3: {"name": "c", "id": 3},
    }
    # 2 is tombstoned, so the fallback does not reach the source
    assert source.calls == []


@pytest.mark.asyncio
async def test_keyed_result_is_the_same_on_miss_and_hit(widgets, source, provider, settings) -> None:
    missed = await get_many(widgets, [1], key_field="id", provider=provider, settings=settings)
    hit = await get_many(widgets, [1], key_field="id", provider=provider, settings=settings)

    assert missed == hit == {1: {"id": 1, "name": "a"}}
    assert source.calls == [1]


@pytest.mark.asyncio
async def test_key_field_outside_projection_returns_list(widgets, provider, settings) -> None:
    result = await get_many(
        widgets, [3, 1], fields=["name"], key_field="color", provider=provider, settings=settings
    )
    assert result == [{"name": "c", "id": 3}, {"name": "a", "id": 1}]


@pytest.mark.asyncio
async def test_blob_misses_rebuild_each_entry(make_source, provider, settings) -> None:
    source = make_source({1: {"id": 1, "status": "2", "deleted_at": None}})
    definition = EntryDefinition("widget", source=source, storage_mode=StorageMode.BLOB)

    result = await get_many(definition, [1, 2], provider=provider, settings=settings)

    assert result == [{"id": 1, "status": 2}]
    assert source.calls == [1, 2]


@pytest.mark.asyncio
async def test_empty_ids(widgets, provider, settings) -> None:
    assert await get_many(widgets, [], provider=provider, settings=settings) == []
    assert await get_many(widgets, ["", None], provider=provider, settings=settings) == []
