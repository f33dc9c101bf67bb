"""
Live session state machine.

States and transitions:

    PREPARING ──(countdown reaches 0)──────────────▶ ACTIVE
    ACTIVE ──(complete, reps|time)─────────────────▶ REPETITION_PICKER
    ACTIVE ──(complete, follow-along)──────────────▶ ACTIVE (next exercise)
    REPETITION_PICKER ──(confirm, rest owed)───────▶ TRANSITION (next exercise)
    REPETITION_PICKER ──(confirm, no rest owed)────▶ ACTIVE (next exercise)
    TRANSITION ──(rest expires | skip)─────────────▶ ACTIVE
    any ──(pause)──▶ PAUSED ──(resume)──▶ previous state

PREPARING is entered once, at session start.  The rest countdown starts
as soon as the picker opens and keeps running into TRANSITION.

Transition guard
----------------
Every transition-triggering handler (complete, confirm, skip rest, rest
complete) acquires the guard synchronously.  The guard is released only by
an observer that runs on the scheduler's ``call_soon`` and sees the change
the handler committed: a new position for transitions that advance, a new
machine state for in-place ones.  Timers never release it.  While it is
held, further triggers are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Literal, Sequence

from loguru import logger

from ..config import (
    DEFAULT_EXERCISE_SECONDS,
    DEFAULT_REST_SECONDS,
    FOLLOW_ALONG_SEGMENT_KINDS,
    PREPARATION_COUNTDOWN_SECONDS,
)
from ..models import SessionExercise, WorkoutSegment
from .scheduler import Handle, Scheduler
from .state import (
    ACTIVE,
    IDLE,
    PAUSED,
    PREPARING,
    REPETITION_PICKER,
    REST_STATES,
    TRANSITION,
    ConfirmedValue,
    ExerciseKind,
    MachineState,
    SessionState,
    TransitionPending,
    Trigger,
)
from .timers import AudioCueScheduler, CueSink, RestTimer, SessionClock

EventName = Literal[
    "start",
    "prepared",
    "complete_exercise",
    "confirm_repetition",
    "skip_rest",
    "rest_complete",
    "pause",
    "resume",
    "finish",
]


@dataclass(frozen=True)
class TransitionEvent:
    """A committed change of machine state and/or position."""

    event: EventName
    from_state: MachineState
    to_state: MachineState
    from_position: tuple[int, int]
    to_position: tuple[int, int]
    elapsed_seconds: int


# =============================================================================
# EXERCISE RESOLUTION
# =============================================================================


def exercise_kind(segment: WorkoutSegment, exercise: SessionExercise) -> ExerciseKind:
    """
    How an exercise is run.

    Warm-up and cool-down (by segment kind, exercise role or explicit flag)
    are follow-along; otherwise the exercise's own type wins, then the
    segment's target type, then whichever target the exercise carries.
    """
    if (
        segment.kind in FOLLOW_ALONG_SEGMENT_KINDS
        or exercise.role in FOLLOW_ALONG_SEGMENT_KINDS
        or exercise.follow_along
    ):
        return "follow-along"
    if exercise.exercise_type is not None:
        return exercise.exercise_type
    if segment.target_type in ("reps", "time"):
        return segment.target_type
    if exercise.target_reps is not None:
        return "reps"
    if exercise.duration_seconds is not None:
        return "time"
    return "reps"


def segment_rest_seconds(segment: WorkoutSegment) -> int:
    """Rest owed after each exercise of *segment*."""
    if segment.rest_between_exercises is not None:
        return segment.rest_between_exercises
    if segment.kind in FOLLOW_ALONG_SEGMENT_KINDS:
        return 0
    return DEFAULT_REST_SECONDS


def picker_default(exercise: SessionExercise, kind: ExerciseKind, value: int | None = None) -> int:
    """Value pre-filled in the repetition picker."""
    if value is not None:
        return max(0, value)
    if kind == "time":
        return exercise.duration_seconds or DEFAULT_EXERCISE_SECONDS
    return exercise.target_reps or 0


def _first_segment_with_exercises(segments: Sequence[WorkoutSegment], start: int) -> int | None:
    for i in range(start, len(segments)):
        if segments[i].exercises:
            return i
    return None


# =============================================================================
# STATE MACHINE
# =============================================================================


class LiveSessionStateMachine:
    """
    Drives one live session over a sequence of workout segments.

    Handlers return True when the event was accepted and False when it was
    dropped (guard held, wrong state, paused, finished or stopped).

    Args:
        segments: Session segments, in order; empty segments are skipped
        scheduler: Timer and deferred-callback scheduler
        on_complete: Called once, deferred, with the final state snapshot
        on_transition: Called synchronously for every committed transition
        cue_sink: Receives audio cues from the rest countdown
    """

    def __init__(
        self,
        segments: Sequence[WorkoutSegment],
        scheduler: Scheduler,
        on_complete: Callable[[SessionState], None] | None = None,
        on_transition: Callable[[TransitionEvent], None] | None = None,
        cue_sink: CueSink | None = None,
    ):
        self.segments: tuple[WorkoutSegment, ...] = tuple(segments)
        self.scheduler = scheduler
        self.on_complete = on_complete
        self.on_transition = on_transition
        self.cues = AudioCueScheduler(cue_sink)

        self._state: SessionState | None = None
        self._stopped = False
        self._completion_scheduled = False
        self._completion: Handle | None = None
        self._observer: Handle | None = None

        self._clock = SessionClock(scheduler, self._on_clock_tick)
        self._rest = RestTimer(
            scheduler,
            read_remaining=lambda: self._state.rest_remaining if self._state else 0,
            write_remaining=self._write_rest_remaining,
            on_finished=self._on_rest_finished,
            cues=self.cues,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is not None and not self._stopped and not self._state.is_complete

    @property
    def clock_running(self) -> bool:
        return self._clock.running

    @property
    def rest_timer_running(self) -> bool:
        return self._rest.running

    def snapshot(self) -> SessionState | None:
        """Copy of the current state, safe to hand to the presentation layer."""
        if self._state is None:
            return None
        return replace(self._state, confirmed=list(self._state.confirmed))

    def current_segment(self) -> WorkoutSegment | None:
        if self._state is None or self._state.segment_index >= len(self.segments):
            return None
        return self.segments[self._state.segment_index]

    def current_exercise(self) -> SessionExercise | None:
        segment = self.current_segment()
        if segment is None or self._state.exercise_index >= len(segment.exercises):
            return None
        return segment.exercises[self._state.exercise_index]

    def upcoming_exercise(self) -> SessionExercise | None:
        """Exercise the session will move to next, if any."""
        if self._state is None:
            return None
        position = self._next_position(self._state.segment_index, self._state.exercise_index)
        if position is None:
            return None
        return self.segments[position[0]].exercises[position[1]]

    def progress(self) -> tuple[int, int]:
        """(exercises finished, total exercises)."""
        total = sum(len(s.exercises) for s in self.segments)
        if self._state is None:
            return 0, total
        if self._state.is_complete:
            return total, total
        done = sum(len(s.exercises) for s in self.segments[: self._state.segment_index])
        return done + self._state.exercise_index, total

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> SessionState:
        """
        Start the session at the first exercise, in PREPARING.

        A session with no exercises at all completes immediately.
        """
        if self._state is not None and not self._stopped:
            logger.debug("Session already started; start ignored")
            return self._state

        self._stopped = False
        self._completion_scheduled = False
        first = _first_segment_with_exercises(self.segments, 0)
        if first is None:
            self._state = SessionState(state=ACTIVE)
            logger.info("Session has no exercises; completing immediately")
            self._finish("start")
            return self._state

        self._state = SessionState(segment_index=first, exercise_index=0, state=PREPARING)
        total = sum(len(s.exercises) for s in self.segments)
        logger.info(f"Session started: {len(self.segments)} segments, {total} exercises")
        self._emit("start", PREPARING, self._state.position)
        self._sync_timers()
        return self._state

    def stop(self) -> SessionState | None:
        """Stop the session and discard its state; returns the last snapshot."""
        last = self.snapshot()
        self._stopped = True
        self._clock.stop()
        self._rest.stop()
        if self._observer is not None:
            self._observer.cancel()
            self._observer = None
        if self._completion is not None:
            self._completion.cancel()
            self._completion = None
        self._state = None
        if last is not None:
            logger.info(f"Session stopped after {last.elapsed_seconds}s")
        return last

    def pause(self) -> bool:
        s = self._state
        if s is None or not self.is_running or s.is_paused:
            logger.debug("pause dropped")
            return False
        from_state = s.state
        s.resume_state = from_state
        s.is_paused = True
        s.state = PAUSED
        self._sync_timers()
        self._emit("pause", from_state, s.position)
        return True

    def resume(self) -> bool:
        s = self._state
        if s is None or not self.is_running or not s.is_paused:
            logger.debug("resume dropped")
            return False
        s.state = s.resume_state or ACTIVE
        s.resume_state = None
        s.is_paused = False
        self._sync_timers()
        self._emit("resume", PAUSED, s.position)
        self._settle()
        return True

    # -------------------------------------------------------------------------
    # Transition handlers
    # -------------------------------------------------------------------------

    def complete_exercise(self, value: int | None = None) -> bool:
        """
        Mark the current exercise done.

        Follow-along exercises advance straight to the next exercise with no
        rest; reps and time exercises open the repetition picker and start
        the rest countdown.
        """
        s = self._accepting("complete_exercise", ACTIVE)
        if s is None:
            return False
        segment = self.segments[s.segment_index]
        exercise = segment.exercises[s.exercise_index]
        kind = exercise_kind(segment, exercise)

        if kind == "follow-along":
            self._acquire("complete_exercise", "position")
            self._move_to_next("complete_exercise", skip_rest=True)
        else:
            self._acquire("complete_exercise", "state")
            rest = segment_rest_seconds(segment)
            s.rest_duration = rest
            s.rest_remaining = rest
            s.pending_value = picker_default(exercise, kind, value)
            self._commit("complete_exercise", REPETITION_PICKER, s.position)
        self._sync_timers()
        return True

    def confirm_repetition(self, value: int) -> bool:
        """Record the picker value and advance to the next exercise."""
        s = self._accepting("confirm_repetition", REPETITION_PICKER)
        if s is None:
            return False
        segment = self.segments[s.segment_index]
        exercise = segment.exercises[s.exercise_index]
        kind = exercise_kind(segment, exercise)
        value = max(0, int(value))

        s.confirmed.append(
            ConfirmedValue(
                segment_index=s.segment_index,
                exercise_index=s.exercise_index,
                exercise_id=exercise.exercise_id,
                value=value,
                unit="seconds" if kind == "time" else "reps",
            )
        )
        s.last_confirmed_value = value
        s.pending_value = None

        self._acquire("confirm_repetition", "position")
        self._move_to_next("confirm_repetition", skip_rest=s.rest_remaining <= 0)
        self._sync_timers()
        return True

    def skip_rest(self) -> bool:
        return self._end_rest("skip_rest")

    def rest_complete(self) -> bool:
        return self._end_rest("rest_complete")

    def _end_rest(self, trigger: Trigger) -> bool:
        s = self._accepting(trigger, TRANSITION)
        if s is None:
            return False
        self._acquire(trigger, "state")
        s.rest_remaining = 0
        s.rest_duration = 0
        self._commit(trigger, ACTIVE, s.position)
        self._sync_timers()
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _accepting(self, trigger: Trigger, *states: MachineState) -> SessionState | None:
        s = self._state
        if s is None or self._stopped:
            reason = "no session"
        elif s.is_complete:
            reason = "session complete"
        elif s.is_locked:
            reason = f"transition pending ({s.guard.trigger})"
        elif s.state not in states:
            reason = f"state is {s.state}"
        else:
            return s
        logger.debug(f"{trigger} dropped: {reason}")
        return None

    def _acquire(self, trigger: Trigger, awaits: Literal["position", "state"]) -> None:
        s = self._state
        s.guard = TransitionPending(
            trigger=trigger,
            awaits=awaits,
            origin_position=s.position,
            origin_state=s.state,
        )

    def _commit(self, event: EventName, to_state: MachineState, to_position: tuple[int, int]) -> None:
        s = self._state
        from_state, from_position = s.state, s.position
        s.state = to_state
        s.segment_index, s.exercise_index = to_position
        if (from_state, from_position) != (to_state, to_position):
            self._emit(event, from_state, from_position)
            self._schedule_observer()

    def _schedule_observer(self) -> None:
        if self._state is None or not self._state.is_locked or self._observer is not None:
            return
        self._observer = self.scheduler.call_soon(self._observe_commit)

    def _observe_commit(self) -> None:
        self._observer = None
        s = self._state
        if s is None or not isinstance(s.guard, TransitionPending):
            return
        pending = s.guard
        if pending.awaits == "position":
            committed = s.position != pending.origin_position or s.is_complete
        else:
            committed = s.state != pending.origin_state or s.is_complete
        if not committed:
            return
        s.guard = IDLE
        self._settle()

    def _settle(self) -> None:
        """Finish a rest that ran out while the guard was held or while paused."""
        s = self._state
        if s is not None and s.state == TRANSITION and s.rest_remaining <= 0 and not s.is_locked:
            self.rest_complete()

    def _next_position(self, segment_index: int, exercise_index: int) -> tuple[int, int] | None:
        if exercise_index + 1 < len(self.segments[segment_index].exercises):
            return segment_index, exercise_index + 1
        following = _first_segment_with_exercises(self.segments, segment_index + 1)
        if following is None:
            return None
        return following, 0

    def _move_to_next(self, event: EventName, skip_rest: bool) -> None:
        s = self._state
        position = self._next_position(s.segment_index, s.exercise_index)
        if position is None:
            self._finish(event)
            return
        if skip_rest or s.rest_remaining <= 0:
            s.rest_remaining = 0
            s.rest_duration = 0
            self._commit(event, ACTIVE, position)
        else:
            self._commit(event, TRANSITION, position)

    def _finish(self, event: EventName) -> None:
        s = self._state
        s.is_complete = True
        s.rest_remaining = 0
        s.pending_value = None
        self._sync_timers()
        self._emit("finish", s.state, s.position)
        self._schedule_observer()
        logger.info(
            f"Session complete: {s.elapsed_seconds}s elapsed, "
            f"{len(s.confirmed)} values confirmed (last trigger: {event})"
        )
        if not self._completion_scheduled:
            self._completion_scheduled = True
            self._completion = self.scheduler.call_soon(self._fire_complete)

    def _fire_complete(self) -> None:
        self._completion = None
        if self._stopped or self._state is None or not self._state.is_complete:
            return
        if self.on_complete is not None:
            self.on_complete(self.snapshot())

    def _emit(self, event: EventName, from_state: MachineState, from_position: tuple[int, int]) -> None:
        s = self._state
        logger.debug(f"{event}: {from_state}@{from_position} -> {s.state}@{s.position}")
        if self.on_transition is None:
            return
        self.on_transition(
            TransitionEvent(
                event=event,
                from_state=from_state,
                to_state=s.state,
                from_position=from_position,
                to_position=s.position,
                elapsed_seconds=s.elapsed_seconds,
            )
        )

    def _sync_timers(self) -> None:
        s = self._state
        live = s is not None and self.is_running and not s.is_paused
        if live:
            self._clock.start()
        else:
            self._clock.stop()
        if live and s.state in REST_STATES and s.rest_remaining > 0:
            self._rest.start()
        else:
            self._rest.stop()

    def _on_clock_tick(self) -> None:
        s = self._state
        if s is None:
            return
        s.elapsed_seconds += 1
        if s.state != PREPARING:
            return
        if s.preparation_countdown <= 1:
            s.preparation_countdown = PREPARATION_COUNTDOWN_SECONDS
            self._commit("prepared", ACTIVE, s.position)
        else:
            s.preparation_countdown -= 1

    def _write_rest_remaining(self, remaining: int) -> None:
        if self._state is not None:
            self._state.rest_remaining = remaining

    def _on_rest_finished(self) -> None:
        s = self._state
        if s is not None and s.state == TRANSITION:
            self.rest_complete()
