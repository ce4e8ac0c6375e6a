"""Process-wide shutdown broadcast.

Every long-running task races its own waits against :class:`Shutdown` so
that it stops promptly once shutdown has been requested, whether by a
signal handler or by :class:`~spacestatus.tasks.TaskSupervisor` after a
task failed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from enum import StrEnum
from typing import Any, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class RaceOutcome(StrEnum):
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    SHUTDOWN = "shutdown"


class Shutdown:
    """One-shot broadcast signal observable by every task."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason passed to the first :meth:`trigger` call."""
        return self._reason

    def trigger(self, reason: str = "requested") -> None:
        """Request shutdown. Later calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        _logger.info("Shutdown triggered (%s)", reason)
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def race(
        self,
        awaitable: Awaitable[T],
        *,
        timeout: float | None = None,
    ) -> tuple[RaceOutcome, T | None]:
        """Await *awaitable* unless shutdown fires or *timeout* elapses first.

        Shutdown is checked before waiting and wins ties, so a task never
        starts processing new input once shutdown has been requested. The
        losing side is cancelled.
        """
        work: asyncio.Future[Any] = asyncio.ensure_future(awaitable)
        if self.requested:
            work.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await work
            return RaceOutcome.SHUTDOWN, None

        stop = asyncio.ensure_future(self._event.wait())
        try:
            done, _pending = await asyncio.wait(
                {work, stop},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for fut in (work, stop):
                if not fut.done():
                    fut.cancel()
            # Reap cancelled futures so no "exception never retrieved" noise.
            await asyncio.gather(work, stop, return_exceptions=True)

        if stop in done:
            return RaceOutcome.SHUTDOWN, None
        if work in done:
            return RaceOutcome.COMPLETED, work.result()
        return RaceOutcome.TIMEOUT, None
