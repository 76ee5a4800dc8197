import asyncio
import logging

import pytest

from gateway.network.scheduler import AsyncioScheduler


@pytest.mark.asyncio
async def test_call_later_fires_once():
    scheduler = AsyncioScheduler()
    fired = []
    scheduler.call_later(0.01, lambda: fired.append(scheduler.now()))
    await asyncio.sleep(0.05)
    assert len(fired) == 1


@pytest.mark.asyncio
async def test_periodic_timer_repeats_until_cancelled():
    scheduler = AsyncioScheduler()
    ticks = []
    handle = scheduler.call_periodic(0.01, lambda: ticks.append(1))
    await asyncio.sleep(0.055)
    handle.cancel()
    seen = len(ticks)
    await asyncio.sleep(0.03)

    assert seen >= 2
    assert len(ticks) == seen
    assert handle.cancelled


@pytest.mark.asyncio
async def test_cancelled_one_shot_never_fires():
    scheduler = AsyncioScheduler()
    fired = []
    handle = scheduler.call_later(0.01, lambda: fired.append(1))
    handle.cancel()
    await asyncio.sleep(0.03)
    assert fired == []


@pytest.mark.asyncio
async def test_periodic_requires_positive_interval():
    with pytest.raises(ValueError):
        AsyncioScheduler().call_periodic(0, lambda: None)


@pytest.mark.asyncio
async def test_spawned_task_failure_is_logged(caplog):
    scheduler = AsyncioScheduler()

    async def _boom() -> None:
        raise RuntimeError("task failed")

    task = scheduler.spawn(_boom(), name="boom-task")
    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)

    errors = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert any("boom-task" in record.getMessage() for record in errors)


@pytest.mark.asyncio
async def test_shutdown_cancels_background_tasks():
    scheduler = AsyncioScheduler()
    task = scheduler.spawn(asyncio.sleep(3600), name="sleeper")
    await scheduler.shutdown()
    assert task.cancelled()
