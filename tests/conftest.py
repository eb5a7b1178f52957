"""Pytest configuration and fixtures for entrycache.

The engine, lock and batch tests run against FakeRedis, an in-memory
stand-in for redis.asyncio.Redis (decode_responses=True) with a manual
clock for expiry. Every command yields to the event loop once so
concurrent callers interleave the way they would against a server; a
pipeline runs all of its queued commands without yielding.
"""

import asyncio
import fnmatch
import math
from typing import Any

import pytest
from redis.exceptions import ResponseError

from entrycache.core.config import Settings
from entrycache.infrastructure.cache.provider import set_redis_provider


class FakeRedis:
    """In-memory async Redis double covering the commands entrycache issues."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self.clock = 0.0
        self.pipelines_executed = 0

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        impl = getattr(self, f"_do_{name}")

        async def command(*args: Any, **kwargs: Any) -> Any:
            await asyncio.sleep(0)
            return impl(*args, **kwargs)

        return command

    # ---- test helpers ----

    def advance(self, seconds: float) -> None:
        """Move the expiry clock forward."""
        self.clock += seconds

    def snapshot(self) -> dict[str, Any]:
        """Copy of every live key and its value."""
        return {
            k: dict(v) if isinstance(v, dict) else v
            for k, v in list(self._data.items())
            if self._alive(k)
        }

    def ttl_of(self, key: str) -> int:
        return self._do_ttl(key)

    # ---- plumbing ----

    def _alive(self, key: str) -> bool:
        expires_at = self._expires.get(key)
        if expires_at is not None and expires_at <= self.clock:
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return key in self._data

    @staticmethod
    def _encode(value: Any) -> str:
        if isinstance(value, bytes):
            return value.decode()
        return str(value)

    def _hash(self, key: str, create: bool = False) -> dict[str, str] | None:
        if not self._alive(key):
            if not create:
                return None
            self._data[key] = {}
        value = self._data[key]
        if not isinstance(value, dict):
            raise TypeError(f"WRONGTYPE {key} is not a hash")
        return value

    # ---- strings and keys ----

    def _do_get(self, key: str) -> str | None:
        if not self._alive(key):
            return None
        value = self._data[key]
        if isinstance(value, dict):
            raise TypeError(f"WRONGTYPE {key} is a hash")
        return value

    def _do_set(self, key: str, value: Any, ex: int | None = None, nx: bool = False) -> bool | None:
        if ex is not None and ex <= 0:
            raise ResponseError("invalid expire time in 'set' command")
        if nx and self._alive(key):
            return None
        self._data[key] = self._encode(value)
        self._expires.pop(key, None)
        if ex is not None:
            self._expires[key] = self.clock + ex
        return True

    def _do_setex(self, key: str, ttl: int, value: Any) -> bool:
        return bool(self._do_set(key, value, ex=ttl))

    def _do_delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._alive(key):
                del self._data[key]
                self._expires.pop(key, None)
                deleted += 1
        return deleted

    def _do_unlink(self, *keys: str) -> int:
        return self._do_delete(*keys)

    def _do_exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._alive(key))

    def _do_expire(self, key: str, ttl: int) -> bool:
        if not self._alive(key):
            return False
        self._expires[key] = self.clock + ttl
        return True

    def _do_ttl(self, key: str) -> int:
        if not self._alive(key):
            return -2
        expires_at = self._expires.get(key)
        if expires_at is None:
            return -1
        return math.ceil(expires_at - self.clock)

    def _do_incr(self, key: str, amount: int = 1) -> int:
        value = int(self._do_get(key) or 0) + amount
        self._data[key] = str(value)
        return value

    # ---- hashes ----

    def _do_hset(
        self,
        key: str,
        field: str | None = None,
        value: Any = None,
        mapping: dict[str, Any] | None = None,
    ) -> int:
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        h = self._hash(key, create=True)
        added = sum(1 for f in items if f not in h)
        h.update({str(f): self._encode(v) for f, v in items.items()})
        return added

    def _do_hget(self, key: str, field: str) -> str | None:
        h = self._hash(key)
        return None if h is None else h.get(field)

    def _do_hgetall(self, key: str) -> dict[str, str]:
        return dict(self._hash(key) or {})

    def _do_hmget(self, key: str, fields: list[str], *args: str) -> list[str | None]:
        h = self._hash(key) or {}
        return [h.get(f) for f in [*fields, *args]]

    def _do_hincrby(self, key: str, field: str, amount: int = 1) -> int:
        h = self._hash(key, create=True)
        value = int(h.get(field, "0")) + amount
        h[field] = str(value)
        return value

    def _do_hincrbyfloat(self, key: str, field: str, amount: float = 1.0) -> float:
        h = self._hash(key, create=True)
        value = float(h.get(field, "0")) + amount
        h[field] = repr(value)
        return value

    # ---- iteration, pipelines, lifecycle ----

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        for key in list(self._data):
            if self._alive(key) and (match is None or fnmatch.fnmatchcase(key, match)):
                await asyncio.sleep(0)
                yield key

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self, transaction)

    async def aclose(self) -> None:
        return None


class FakePipeline:
    """Queues commands and runs them back to back on execute()."""

    def __init__(self, client: FakeRedis, transaction: bool) -> None:
        self._client = client
        self.transaction = transaction
        self._queue: list[tuple[Any, tuple, dict]] = []

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        impl = getattr(self._client, f"_do_{name}")

        def queue(*args: Any, **kwargs: Any) -> "FakePipeline":
            self._queue.append((impl, args, kwargs))
            return self

        return queue

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        self._queue.clear()
        return False

    async def execute(self) -> list[Any]:
        await asyncio.sleep(0)
        self._client.pipelines_executed += 1
        results = [impl(*args, **kwargs) for impl, args, kwargs in self._queue]
        self._queue.clear()
        return results


class FakeProvider:
    """StoreProvider handing out one FakeRedis for every pool."""

    def __init__(self, client: FakeRedis) -> None:
        self.client = client
        self.requested: list[str] = []

    def get(self, pool: str = "default") -> FakeRedis:
        self.requested.append(pool)
        return self.client


class FakeSource:
    """DataSource backed by a dict; records every load."""

    def __init__(self, records: dict[Any, Any] | None = None, delay: float = 0.0) -> None:
        self.records = dict(records or {})
        self.delay = delay
        self.calls: list[Any] = []

    async def load_current(self, pk: Any) -> Any:
        self.calls.append(pk)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.records.get(pk)


@pytest.fixture
def settings() -> Settings:
    """Settings with a short lock back-off and no .env lookup."""
    return Settings(
        _env_file=None,
        lock_retry_interval=0.005,
        lock_max_tries=100,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def provider(fake_redis: FakeRedis):
    """FakeProvider installed as the process-wide provider for the test."""
    fake_provider = FakeProvider(fake_redis)
    set_redis_provider(fake_provider)
    yield fake_provider
    set_redis_provider(None)


@pytest.fixture
def make_source():
    """Factory for FakeSource instances."""
    return FakeSource
