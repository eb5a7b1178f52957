"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from entrycache.core.config import Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.cache_default_ttl == 365 * 24 * 60 * 60
    assert settings.cache_tombstone_ttl == 60
    assert settings.cache_ttl_jitter == 10
    assert settings.lock_ttl == 5
    assert settings.lock_max_tries == 10
    assert settings.lock_retry_interval == 0.1


@pytest.mark.parametrize(
    "overrides",
    [
        {"cache_default_ttl": -1},
        {"cache_ttl_jitter": -1},
        {"cache_empty_ttl": 0},
        {"cache_tombstone_ttl": 0},
        {"lock_ttl": 0},
        {"lock_max_tries": -1},
        {"lock_retry_interval": -0.1},
        {"redis_pools": {"default": "redis://other:6379/0"}},
    ],
)
def test_invalid_values_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("LOCK_MAX_TRIES", "3")
    monkeypatch.setenv("REDIS_POOLS", '{"sessions": "redis://localhost:6379/2"}')
    settings = Settings(_env_file=None)
    assert settings.lock_max_tries == 3
    assert settings.redis_pools == {"sessions": "redis://localhost:6379/2"}


def test_shortest_ttls_still_expire() -> None:
    settings = Settings(_env_file=None, cache_empty_ttl=1, cache_tombstone_ttl=1, cache_ttl_jitter=0)
    assert settings.cache_empty_ttl == 1
    assert settings.cache_tombstone_ttl == 1
