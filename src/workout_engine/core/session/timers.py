"""
Session timers and audio cues.

Two independent one-second interval timers run during a session:

- session clock: elapsed time, and the preparation countdown while PREPARING
- rest timer:    rest countdown and audio cues while REPETITION_PICKER or
                 TRANSITION

Both are cancelled (not merely ignored) while the session is paused.

Cues
----
  remaining 3, 2 → short cue
  remaining 1    → long cue

A cue is a side effect of the countdown reaching a value; a failing cue
sink is logged and never changes the count.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from loguru import logger

from ..config import LONG_CUE_AT, SHORT_CUE_AT, TICK_SECONDS
from .scheduler import Handle, Scheduler


class CueKind(str, Enum):
    SHORT = "short"
    LONG = "long"


CueSink = Callable[[CueKind], None]


def cue_for(remaining: int) -> CueKind | None:
    """Cue to play when the countdown reaches *remaining* seconds."""
    if remaining in SHORT_CUE_AT:
        return CueKind.SHORT
    if remaining in LONG_CUE_AT:
        return CueKind.LONG
    return None


def countdown_step(remaining: int) -> int:
    """One tick of a countdown, clamped at 0."""
    return max(0, remaining - 1)


class AudioCueScheduler:
    """Plays countdown cues through an injected sink."""

    def __init__(self, sink: CueSink | None = None):
        self.sink = sink

    def on_countdown(self, remaining: int) -> CueKind | None:
        cue = cue_for(remaining)
        if cue is None or self.sink is None:
            return cue
        try:
            self.sink(cue)
        except Exception as exc:
            logger.warning(f"Audio cue '{cue.value}' failed at {remaining}s: {exc}")
        return cue


class IntervalTimer:
    """
    Repeating timer on a Scheduler.

    ``on_tick`` may stop (or restart) the timer from inside the tick.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[], None],
        interval: float = TICK_SECONDS,
        name: str = "timer",
    ):
        self.scheduler = scheduler
        self.on_tick = on_tick
        self.interval = interval
        self.name = name
        self._handle: Handle | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._schedule()

    def stop(self) -> None:
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self.scheduler.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._running:
            return
        self.on_tick()
        if self._running and self._handle is None:
            self._schedule()


class RestTimer:
    """
    Rest countdown with audio cues.

    The remaining seconds live in SessionState; the timer reads and writes
    them through the machine and plays cues for each new value.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        read_remaining: Callable[[], int],
        write_remaining: Callable[[int], None],
        on_finished: Callable[[], None],
        cues: AudioCueScheduler | None = None,
    ):
        self._read = read_remaining
        self._write = write_remaining
        self._on_finished = on_finished
        self.cues = cues or AudioCueScheduler()
        self._timer = IntervalTimer(scheduler, self._tick, name="rest")

    @property
    def running(self) -> bool:
        return self._timer.running

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def _tick(self) -> None:
        remaining = countdown_step(self._read())
        self._write(remaining)
        self.cues.on_countdown(remaining)
        if remaining <= 0:
            self._timer.stop()
            self._on_finished()


class SessionClock(IntervalTimer):
    """Elapsed-session clock; one tick per second."""

    def __init__(self, scheduler: Scheduler, on_tick: Callable[[], None]):
        super().__init__(scheduler, on_tick, TICK_SECONDS, name="session-clock")
