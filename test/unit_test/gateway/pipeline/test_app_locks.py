from __future__ import annotations

import asyncio

import pytest

from ikoma_mcp.gateway.pipeline.locks import AppLockRegistry

pytestmark = pytest.mark.asyncio


async def test_same_app_is_serialized() -> None:
    locks = AppLockRegistry()
    events = []

    async def work(tag: str) -> None:
        async with locks.hold("demo"):
            events.append(f"{tag}:start")
            await asyncio.sleep(0.01)
            events.append(f"{tag}:end")

    await asyncio.gather(work("a"), work("b"))

    assert events in (
        ["a:start", "a:end", "b:start", "b:end"],
        ["b:start", "b:end", "a:start", "a:end"],
    )


async def test_different_apps_do_not_block_each_other() -> None:
    locks = AppLockRegistry()
    entered = asyncio.Event()

    async def holder() -> None:
        async with locks.hold("one"):
            await asyncio.wait_for(entered.wait(), timeout=1.0)

    async def other() -> None:
        async with locks.hold("two"):
            entered.set()

    await asyncio.gather(holder(), other())
    assert not locks.is_locked("one")
    assert not locks.is_locked("two")


async def test_lock_released_on_error() -> None:
    locks = AppLockRegistry()
    with pytest.raises(RuntimeError):
        async with locks.hold("demo"):
            assert locks.is_locked("demo")
            raise RuntimeError("boom")
    assert not locks.is_locked("demo")
