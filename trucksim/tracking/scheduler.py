"""Periodic task back-ends for the tracking engine.

Both schedulers are single-threaded: a task callback runs to completion
before anything else scheduled on the same scheduler starts. Each call to
`every()` returns a handle whose `cancel()` guarantees the callback will not
fire again.

- `AsyncioScheduler` chains `loop.call_later` on a running event loop.
- `VirtualScheduler` keeps a virtual clock that only moves on `advance()`.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Tuple

LOG = logging.getLogger("tracking.scheduler")

TaskFn = Callable[[], None]


class _LoopTask:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, fn: TaskFn) -> None:
        self.interval = float(interval)
        self._loop = loop
        self._fn = fn
        self._timer: Optional[asyncio.TimerHandle] = None
        self.cancelled = False

    def _arm(self) -> None:
        self._timer = self._loop.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        if self.cancelled:
            return
        # Re-arm first so the cadence does not drift by the callback's runtime.
        self._arm()
        self._fn()

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class AsyncioScheduler:
    """setInterval-style repeating tasks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            # Must be called from inside the loop's thread.
            self._loop = asyncio.get_running_loop()
        return self._loop

    def every(self, interval: float, fn: TaskFn) -> _LoopTask:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        task = _LoopTask(self._get_loop(), interval, fn)
        task._arm()
        return task


class _VirtualTask:
    def __init__(self, interval: float, fn: TaskFn) -> None:
        self.interval = float(interval)
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock.

    Tasks due at the same instant fire in the order they were scheduled.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)
        self._queue: List[Tuple[float, int, _VirtualTask]] = []
        self._seq = itertools.count()

    def every(self, interval: float, fn: TaskFn) -> _VirtualTask:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        task = _VirtualTask(interval, fn)
        heapq.heappush(self._queue, (self.now + task.interval, next(self._seq), task))
        return task

    def active_count(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every task that falls due.

        Returns the number of callbacks fired.
        """
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        target = self.now + float(seconds)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now = due
            heapq.heappush(self._queue, (due + task.interval, next(self._seq), task))
            task.fn()
            fired += 1
        self.now = target
        return fired


__all__ = ["AsyncioScheduler", "VirtualScheduler"]
