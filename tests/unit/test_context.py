"""Entry scope (contextvars registry) tests."""

import asyncio

import pytest

from entrycache.shared.context import entry_scope, in_entry_scope, scoped_instance


def test_outside_scope_builds_each_time() -> None:
    assert in_entry_scope() is False
    assert scoped_instance("k", object) is not scoped_instance("k", object)


def test_scope_reuses_and_nests() -> None:
    with entry_scope():
        outer = scoped_instance("k", object)
        assert scoped_instance("k", object) is outer
        with entry_scope():
            assert scoped_instance("k", object) is not outer
        assert scoped_instance("k", object) is outer
    assert in_entry_scope() is False


@pytest.mark.asyncio
async def test_tasks_get_their_own_registry() -> None:
    async def lookup():
        with entry_scope():
            return scoped_instance("k", object)

    first, second = await asyncio.gather(lookup(), lookup())
    assert first is not second
