from __future__ import annotations

import asyncio

import pytest

from spacestatus.shutdown import RaceOutcome, Shutdown


@pytest.mark.asyncio
async def test_race_returns_result_when_work_completes() -> None:
    shutdown = Shutdown()

    async def work() -> int:
        return 7

    outcome, result = await shutdown.race(work(), timeout=1.0)

    assert outcome == RaceOutcome.COMPLETED
    assert result == 7


@pytest.mark.asyncio
async def test_race_times_out() -> None:
    shutdown = Shutdown()

    outcome, result = await shutdown.race(asyncio.sleep(10), timeout=0.01)

    assert outcome == RaceOutcome.TIMEOUT
    assert result is None


@pytest.mark.asyncio
async def test_race_interrupted_by_shutdown() -> None:
    shutdown = Shutdown()
    asyncio.get_running_loop().call_later(0.01, shutdown.trigger, "test")

    outcome, _ = await shutdown.race(asyncio.sleep(10))

    assert outcome == RaceOutcome.SHUTDOWN
    assert shutdown.requested


@pytest.mark.asyncio
async def test_race_after_shutdown_never_starts_work() -> None:
    shutdown = Shutdown()
    shutdown.trigger()
    started = False

    async def work() -> None:
        nonlocal started
        started = True

    outcome, _ = await shutdown.race(work())

    assert outcome == RaceOutcome.SHUTDOWN
    assert started is False


@pytest.mark.asyncio
async def test_race_propagates_work_exceptions() -> None:
    shutdown = Shutdown()

    async def work() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await shutdown.race(work(), timeout=1.0)


@pytest.mark.asyncio
async def test_trigger_keeps_first_reason() -> None:
    shutdown = Shutdown()
    shutdown.trigger("signal SIGTERM")
    shutdown.trigger("exiting")

    assert shutdown.reason == "signal SIGTERM"
    await asyncio.wait_for(shutdown.wait(), 0.1)
