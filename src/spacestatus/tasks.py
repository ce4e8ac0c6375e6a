"""Supervision of the process's long-running tasks.

A task that ends with an exception while no shutdown was requested leaves
the process half-working. The supervisor treats that as fatal and triggers
the shared shutdown so the remaining tasks wind down together.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from spacestatus.shutdown import Shutdown

_logger = logging.getLogger(__name__)


class TaskSupervisor:
    def __init__(self, shutdown: Shutdown) -> None:
        self._shutdown = shutdown
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failed: list[str] = []

    @property
    def shutdown(self) -> Shutdown:
        return self._shutdown

    @property
    def failed(self) -> list[str]:
        """Names of tasks that exited unexpectedly."""
        return list(self._failed)

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        _logger.debug("Spawned task %s", name)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        name = task.get_name()

        if task.cancelled():
            if not self._shutdown.requested:
                self._fail(name, "cancelled")
            return

        exc = task.exception()
        if exc is None:
            _logger.info("Task %s finished", name)
            return
        if self._shutdown.requested:
            _logger.info("Task %s failed during shutdown: %r", name, exc)
            return
        self._fail(name, repr(exc), exc)

    def _fail(self, name: str, detail: str, exc: BaseException | None = None) -> None:
        _logger.error(
            "Task %s exited without shutdown being requested (%s)",
            name,
            detail,
            exc_info=exc,
        )
        self._failed.append(name)
        self._shutdown.trigger(f"task {name} failed")

    async def join(self, timeout: float | None = None) -> None:
        """Wait for every task to finish, cancelling stragglers after *timeout*."""
        tasks = set(self._tasks)
        if not tasks:
            return
        _done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            _logger.warning("Task %s did not stop in time; cancelling", task.get_name())
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
