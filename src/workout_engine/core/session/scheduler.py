"""
Cooperative schedulers for the live session.

The session never sleeps or spawns threads: every timer tick and every
deferred callback goes through a Scheduler.

- ManualScheduler:  deterministic virtual clock, driven by ``advance()``
                    (tests, CLI simulation)
- AsyncioScheduler: wraps an asyncio event loop (real time)
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, Protocol

Callback = Callable[[], None]


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def time(self) -> float: ...

    def call_soon(self, callback: Callback) -> Handle: ...

    def call_later(self, delay: float, callback: Callback) -> Handle: ...


@dataclass(order=True)
class _ManualHandle:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-time scheduler.

    Callbacks run only inside ``run_pending()`` / ``advance()``, ordered by
    due time and then by scheduling order, so ``call_soon`` callbacks always
    run after the code that scheduled them has returned.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[_ManualHandle] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_soon(self, callback: Callback) -> _ManualHandle:
        return self.call_later(0.0, callback)

    def call_later(self, delay: float, callback: Callback) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(0.0, delay), next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    def pending(self) -> int:
        """Number of scheduled, not-cancelled callbacks."""
        return sum(1 for h in self._queue if not h.cancelled)

    def run_pending(self) -> int:
        """Run every callback due at the current time; return how many ran."""
        ran = 0
        while self._queue and self._queue[0].due <= self._now:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            handle.callback()
            ran += 1
        return ran

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*, firing callbacks as they fall due."""
        target = self._now + seconds
        self.run_pending()
        while self._queue:
            head = self._queue[0]
            if head.cancelled:
                heapq.heappop(self._queue)
                continue
            if head.due > target:
                break
            self._now = head.due
            self.run_pending()
        self._now = target
        self.run_pending()


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Without an explicit loop it must be created inside a running loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()

    def time(self) -> float:
        return self._loop.time()

    def call_soon(self, callback: Callback) -> asyncio.Handle:
        return self._loop.call_soon(callback)

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self._loop.call_later(delay, callback)
