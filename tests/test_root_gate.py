"""Tests for the shared/exclusive storage root gate."""
import asyncio

import pytest

from filestore.services.root_gate import RootGate


@pytest.mark.asyncio
async def test_shared_holders_run_concurrently():
    gate = RootGate()
    inside = 0
    peak = 0

    async def worker():
        nonlocal inside, peak
        async with gate.shared():
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0.01)
            inside -= 1

    await asyncio.gather(worker(), worker(), worker())
    assert peak == 3


@pytest.mark.asyncio
async def test_exclusive_waits_for_shared_holders():
    gate = RootGate()
    events = []
    release = asyncio.Event()

    async def reader():
        async with gate.shared():
            events.append("read-start")
            await release.wait()
            events.append("read-end")

    async def clearer():
        async with gate.exclusive():
            events.append("clear")

    reader_task = asyncio.create_task(reader())
    await asyncio.sleep(0)
    clear_task = asyncio.create_task(clearer())
    await asyncio.sleep(0.01)
    assert events == ["read-start"]

    release.set()
    await asyncio.gather(reader_task, clear_task)
    assert events == ["read-start", "read-end", "clear"]


@pytest.mark.asyncio
async def test_new_shared_waits_while_exclusive_pending():
    gate = RootGate()
    events = []
    release = asyncio.Event()

    async def first_reader():
        async with gate.shared():
            await release.wait()
            events.append("first")

    async def clearer():
        async with gate.exclusive():
            events.append("clear")

    async def late_reader():
        async with gate.shared():
            events.append("late")

    t1 = asyncio.create_task(first_reader())
    await asyncio.sleep(0)
    t2 = asyncio.create_task(clearer())
    await asyncio.sleep(0)
    t3 = asyncio.create_task(late_reader())
    await asyncio.sleep(0.01)
    assert events == []

    release.set()
    await asyncio.gather(t1, t2, t3)
    assert events == ["first", "clear", "late"]


@pytest.mark.asyncio
async def test_cancelled_exclusive_waiter_unblocks_readers():
    gate = RootGate()
    release = asyncio.Event()

    async def holder():
        async with gate.shared():
            await release.wait()

    t1 = asyncio.create_task(holder())
    await asyncio.sleep(0)
    waiter = asyncio.create_task(gate.exclusive().__aenter__())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    async def reader():
        async with gate.shared():
            return "ok"

    assert await asyncio.wait_for(reader(), timeout=1) == "ok"
    release.set()
    await t1
    assert not gate.busy
