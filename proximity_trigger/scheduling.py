"""Delayed-callback primitives.

The engine only ever asks for "run this callback after N milliseconds". There
is no cancellation: callbacks must check for themselves whether they still
have work to do when they finally run.

    ManualScheduler   virtual clock advanced explicitly; deterministic.
    AsyncioScheduler  real timers on the running event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler(Protocol):
    def after(self, duration_ms: int, callback: Callback) -> None: ...


class ManualScheduler:
    """Runs callbacks when the virtual clock is advanced past their due time.

    Callbacks due at the same time run in scheduling order. A callback that
    raises is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self.now_ms = 0
        self._queue: list[tuple[int, int, Callback]] = []
        self._seq = itertools.count()

    def after(self, duration_ms: int, callback: Callback) -> None:
        due = self.now_ms + max(0, duration_ms)
        heapq.heappush(self._queue, (due, next(self._seq), callback))

    def advance(self, duration_ms: int) -> int:
        """Move the clock forward and run everything now due. Returns callbacks run."""
        target = self.now_ms + duration_ms
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, callback = heapq.heappop(self._queue)
            self.now_ms = max(self.now_ms, due)
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")
            ran += 1
        self.now_ms = target
        return ran

    @property
    def pending(self) -> int:
        return len(self._queue)


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop with ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def after(self, duration_ms: int, callback: Callback) -> None:
        loop = self._loop or asyncio.get_running_loop()
        loop.call_later(max(0, duration_ms) / 1000, callback)
