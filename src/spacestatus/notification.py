"""Bounded "new data available" signal between ingestion and rendering.

A notification carries no payload: the value itself is already stored in
its mutator before the notification is sent, so a dropped notification
only delays a render, it never loses data.
"""

from __future__ import annotations

import asyncio
import logging

_logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 16


class NotificationChannel:
    """Many-producer, single-consumer unit-signal channel."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._queue: asyncio.Queue[None] = asyncio.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def pending(self) -> int:
        """Number of queued, not yet received notifications."""
        return self._queue.qsize()

    async def notify(self, timeout: float) -> bool:
        """Send one notification, waiting at most *timeout* seconds for room.

        Returns ``False`` instead of raising when the channel stayed full.
        """
        try:
            self._queue.put_nowait(None)
            return True
        except asyncio.QueueFull:
            pass
        try:
            await asyncio.wait_for(self._queue.put(None), timeout)
        except TimeoutError:
            return False
        return True

    async def receive(self) -> None:
        """Wait for the next notification."""
        await self._queue.get()

    def drain(self) -> int:
        """Drop every queued notification, returning how many were dropped."""
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            dropped += 1
