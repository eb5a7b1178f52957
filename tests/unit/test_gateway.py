"""StoreGateway unit tests."""

import pytest

from entrycache.infrastructure.cache.gateway import StoreGateway


@pytest.fixture
def gateway(fake_redis) -> StoreGateway:
    return StoreGateway(fake_redis)


@pytest.mark.asyncio
async def test_set_nx_ex_only_creates_once(gateway, fake_redis) -> None:
    assert await gateway.set_nx_ex("k.lock", 1, 5) is True
    assert await gateway.set_nx_ex("k.lock", 1, 5) is False
    assert fake_redis.ttl_of("k.lock") == 5


@pytest.mark.asyncio
async def test_delete_without_keys(gateway) -> None:
    assert await gateway.delete() == 0


@pytest.mark.asyncio
async def test_incr_ex_sets_ttl_on_first_hit_and_repairs_missing_expiry(gateway, fake_redis) -> None:
    assert await gateway.incr_ex("hits", 30) == 1
    assert fake_redis.ttl_of("hits") == 30

    await fake_redis.set("orphan", 4)
    assert await gateway.incr_ex("orphan", 30) == 5
    assert fake_redis.ttl_of("orphan") == 30


@pytest.mark.asyncio
async def test_clear_keys_by_prefix(gateway, fake_redis) -> None:
    for i in range(3):
        await fake_redis.set(f"widget:{i}", "{}")
    await fake_redis.set("widget:9.null", 1)
    await fake_redis.set("gadget:1", "{}")

    assert await gateway.clear_keys("widget:") == 4
    assert fake_redis.snapshot() == {"gadget:1": "{}"}
    assert await gateway.clear_keys("widget:") == 0
