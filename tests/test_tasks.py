from __future__ import annotations

import asyncio

import pytest

from spacestatus.shutdown import Shutdown
from spacestatus.tasks import TaskSupervisor


@pytest.mark.asyncio
async def test_failing_task_triggers_shutdown() -> None:
    shutdown = Shutdown()
    supervisor = TaskSupervisor(shutdown)

    async def broken() -> None:
        raise RuntimeError("sensor worker crashed")

    supervisor.spawn(broken(), name="broken")
    await asyncio.wait_for(shutdown.wait(), 1.0)

    assert supervisor.failed == ["broken"]
    assert shutdown.reason == "task broken failed"


@pytest.mark.asyncio
async def test_task_finishing_normally_is_not_fatal() -> None:
    shutdown = Shutdown()
    supervisor = TaskSupervisor(shutdown)

    async def fine() -> None:
        return None

    task = supervisor.spawn(fine(), name="fine")
    await task
    await asyncio.sleep(0)

    assert not shutdown.requested
    assert supervisor.failed == []
    assert len(supervisor) == 0


@pytest.mark.asyncio
async def test_failure_after_shutdown_requested_is_not_escalated() -> None:
    shutdown = Shutdown()
    supervisor = TaskSupervisor(shutdown)

    async def fails_on_shutdown() -> None:
        await shutdown.wait()
        raise RuntimeError("late")

    supervisor.spawn(fails_on_shutdown(), name="late")
    shutdown.trigger("test")
    await supervisor.join(timeout=1.0)

    assert supervisor.failed == []


@pytest.mark.asyncio
async def test_join_cancels_stragglers() -> None:
    shutdown = Shutdown()
    supervisor = TaskSupervisor(shutdown)
    task = supervisor.spawn(asyncio.sleep(10), name="sleeper")

    shutdown.trigger("test")
    await supervisor.join(timeout=0.01)

    assert task.cancelled()
    assert supervisor.failed == []
