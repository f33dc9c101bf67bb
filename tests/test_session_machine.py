"""
Live session state machine tests.

Everything runs on ManualScheduler, so "time" only moves inside
``scheduler.advance()`` and deferred callbacks only run inside
``scheduler.run_pending()``.
"""

import asyncio

import pytest

from workout_engine.core.models import SessionExercise, WorkoutSegment
from workout_engine.core.session import (
    ACTIVE,
    PAUSED,
    PREPARING,
    REPETITION_PICKER,
    TRANSITION,
    AsyncioScheduler,
    CueKind,
    LiveSessionStateMachine,
    ManualScheduler,
    cue_for,
    exercise_kind,
    picker_default,
    segment_rest_seconds,
)
from workout_engine.core.session.timers import AudioCueScheduler, IntervalTimer, countdown_step

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _reps(ex_id: str = "push_up", target: int | None = 10) -> SessionExercise:
    return SessionExercise(ex_id, ex_id.replace("_", " ").title(), exercise_type="reps", target_reps=target)


def _timed(ex_id: str = "plank", seconds: int | None = 30) -> SessionExercise:
    return SessionExercise(ex_id, ex_id.title(), exercise_type="time", duration_seconds=seconds)


def _segment(*exercises: SessionExercise, kind: str = "main", rest: int | None = None, seg_id: str = "s") -> WorkoutSegment:
    return WorkoutSegment(id=seg_id, kind=kind, exercises=tuple(exercises), rest_between_exercises=rest)


class Harness:
    """A machine on a virtual clock with recorded events, cues and completions."""

    def __init__(self, *segments: WorkoutSegment, cue_sink=None):
        self.scheduler = ManualScheduler()
        self.events = []
        self.cues = []
        self.completed = []
        self.machine = LiveSessionStateMachine(
            segments,
            self.scheduler,
            on_complete=self.completed.append,
            on_transition=self.events.append,
            cue_sink=cue_sink or self.cues.append,
        )

    @property
    def state(self):
        return self.machine.state

    def start_active(self) -> None:
        """Start and run through the 3 s preparation countdown."""
        self.machine.start()
        self.scheduler.advance(3)
        assert self.state.state == ACTIVE

    def settle(self) -> None:
        self.scheduler.run_pending()


# ===========================================================================
# scheduler.py
# ===========================================================================

class TestManualScheduler:
    def test_callbacks_run_in_due_order(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(2, lambda: fired.append("b"))
        scheduler.call_later(1, lambda: fired.append("a"))
        scheduler.call_soon(lambda: fired.append("now"))

        scheduler.advance(2)

        assert fired == ["now", "a", "b"]
        assert scheduler.time() == 2

    def test_call_soon_waits_for_run_pending(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_soon(lambda: fired.append(1))
        assert fired == []
        assert scheduler.run_pending() == 1
        assert fired == [1]

    def test_cancelled_callback_never_runs(self):
        scheduler = ManualScheduler()
        fired = []
        handle = scheduler.call_later(1, lambda: fired.append(1))
        handle.cancel()
        scheduler.advance(5)
        assert fired == []
        assert scheduler.pending() == 0

    def test_callbacks_scheduled_from_callbacks(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(1, lambda: scheduler.call_soon(lambda: fired.append(scheduler.time())))
        scheduler.advance(1)
        assert fired == [1]


class TestAsyncioScheduler:
    def test_runs_on_event_loop(self):
        async def main():
            scheduler = AsyncioScheduler()
            fired = []
            scheduler.call_soon(lambda: fired.append("soon"))
            scheduler.call_later(0.01, lambda: fired.append("later"))
            scheduler.call_later(0.01, lambda: fired.append("cancelled")).cancel()
            await asyncio.sleep(0.05)
            return fired

        assert asyncio.run(main()) == ["soon", "later"]


# ===========================================================================
# timers.py
# ===========================================================================

class TestCues:
    def test_cue_values(self):
        assert cue_for(3) == CueKind.SHORT
        assert cue_for(2) == CueKind.SHORT
        assert cue_for(1) == CueKind.LONG
        assert cue_for(4) is None
        assert cue_for(0) is None

    def test_countdown_clamps_at_zero(self):
        assert countdown_step(5) == 4
        assert countdown_step(0) == 0

    def test_failing_sink_does_not_raise(self):
        def sink(cue):
            raise RuntimeError("audio device busy")

        assert AudioCueScheduler(sink).on_countdown(1) == CueKind.LONG


class TestIntervalTimer:
    def test_ticks_once_per_interval(self):
        scheduler = ManualScheduler()
        ticks = []
        timer = IntervalTimer(scheduler, lambda: ticks.append(scheduler.time()))
        timer.start()
        scheduler.advance(3)
        assert ticks == [1, 2, 3]

    def test_stop_from_inside_tick(self):
        scheduler = ManualScheduler()
        ticks = []
        timer = IntervalTimer(scheduler, lambda: (ticks.append(1), timer.stop()))
        timer.start()
        scheduler.advance(5)
        assert ticks == [1]
        assert not timer.running

    def test_start_is_idempotent(self):
        scheduler = ManualScheduler()
        ticks = []
        timer = IntervalTimer(scheduler, lambda: ticks.append(1))
        timer.start()
        timer.start()
        scheduler.advance(2)
        assert len(ticks) == 2


# ===========================================================================
# machine.py: exercise resolution
# ===========================================================================

class TestExerciseResolution:
    def test_warmup_segment_is_follow_along(self):
        assert exercise_kind(_segment(kind="warmup"), _reps()) == "follow-along"

    def test_cooldown_role_is_follow_along(self):
        ex = SessionExercise("stretch", "Stretch", role="cooldown")
        assert exercise_kind(_segment(), ex) == "follow-along"

    def test_explicit_follow_along_flag(self):
        ex = SessionExercise("flow", "Flow", follow_along=True, exercise_type="time")
        assert exercise_kind(_segment(), ex) == "follow-along"

    def test_exercise_type_wins(self):
        assert exercise_kind(_segment(), _timed()) == "time"

    def test_segment_target_type(self):
        segment = WorkoutSegment(id="s", target_type="time", exercises=())
        assert exercise_kind(segment, SessionExercise("x", "X")) == "time"

    def test_inferred_from_targets(self):
        assert exercise_kind(_segment(), SessionExercise("x", "X", duration_seconds=20)) == "time"
        assert exercise_kind(_segment(), SessionExercise("x", "X")) == "reps"

    def test_segment_rest(self):
        assert segment_rest_seconds(_segment()) == 10
        assert segment_rest_seconds(_segment(kind="warmup")) == 0
        assert segment_rest_seconds(_segment(rest=0)) == 0
        assert segment_rest_seconds(_segment(kind="cooldown", rest=15)) == 15

    def test_picker_defaults(self):
        assert picker_default(_reps(target=12), "reps") == 12
        assert picker_default(_reps(target=None), "reps") == 0
        assert picker_default(_timed(seconds=45), "time") == 45
        assert picker_default(_timed(seconds=None), "time") == 30
        assert picker_default(_reps(), "reps", value=7) == 7


# ===========================================================================
# machine.py: transitions
# ===========================================================================

class TestPreparation:
    def test_start_enters_preparing(self):
        h = Harness(_segment(_reps()))
        state = h.machine.start()
        assert state.state == PREPARING
        assert state.position == (0, 0)
        assert h.machine.clock_running
        assert not h.machine.rest_timer_running

    def test_countdown_reaches_active_after_three_seconds(self):
        h = Harness(_segment(_reps()))
        h.machine.start()
        h.scheduler.advance(2)
        assert h.state.state == PREPARING
        assert h.state.preparation_countdown == 1
        h.scheduler.advance(1)
        assert h.state.state == ACTIVE
        assert h.state.elapsed_seconds == 3

    def test_handlers_dropped_while_preparing(self):
        h = Harness(_segment(_reps()))
        h.machine.start()
        assert not h.machine.complete_exercise()
        assert not h.machine.skip_rest()

    def test_preparing_observed_once_per_session(self):
        h = Harness(_segment(_reps("a"), _reps("b")), _segment(_reps("c"), seg_id="s2"))
        h.start_active()
        for _ in range(3):
            h.machine.complete_exercise()
            h.settle()
            h.scheduler.advance(2)
            h.machine.confirm_repetition(8)
            h.settle()
            h.scheduler.advance(10)

        assert h.completed
        assert [e.event for e in h.events if e.to_state == PREPARING] == ["start"]


class TestHardLock:
    def test_double_complete_opens_picker_once(self):
        h = Harness(_segment(_reps(), _reps("squat")))
        h.start_active()

        assert h.machine.complete_exercise() is True
        assert h.machine.complete_exercise() is False

        assert h.state.state == REPETITION_PICKER
        assert [e.to_state for e in h.events].count(REPETITION_PICKER) == 1

    def test_lock_held_until_observer_runs(self):
        h = Harness(_segment(_reps(), _reps("squat")))
        h.start_active()
        h.machine.complete_exercise()

        assert h.state.is_locked
        assert h.state.guard.trigger == "complete_exercise"
        h.settle()
        assert not h.state.is_locked

    def test_confirm_dropped_while_locked(self):
        h = Harness(_segment(_reps(), _reps("squat")))
        h.start_active()
        h.machine.complete_exercise()

        assert not h.machine.confirm_repetition(5)
        h.settle()
        assert h.machine.confirm_repetition(5)

    def test_double_confirm_advances_once(self):
        h = Harness(_segment(_reps("a"), _reps("b"), _reps("c")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()

        h.machine.confirm_repetition(9)
        h.machine.confirm_repetition(9)
        h.settle()

        assert h.state.position == (0, 1)
        assert len(h.state.confirmed) == 1


class TestPickerAndRest:
    def test_complete_starts_rest_and_prefills_picker(self):
        h = Harness(_segment(_reps(target=12), _reps("squat")))
        h.start_active()
        h.machine.complete_exercise()

        assert h.state.state == REPETITION_PICKER
        assert h.state.pending_value == 12
        assert h.state.rest_remaining == 10
        assert h.machine.rest_timer_running

    def test_explicit_completion_value(self):
        h = Harness(_segment(_reps(target=12)))
        h.start_active()
        h.machine.complete_exercise(value=15)
        assert h.state.pending_value == 15

    def test_confirm_with_rest_owed_enters_transition_then_active(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.scheduler.advance(2)

        h.machine.confirm_repetition(11)
        h.settle()

        assert h.state.state == TRANSITION
        assert h.state.position == (0, 1)
        assert h.state.rest_remaining == 8
        assert h.state.last_confirmed_value == 11

        h.scheduler.advance(8)

        assert h.state.state == ACTIVE
        assert h.state.rest_remaining == 0
        assert not h.machine.rest_timer_running

    def test_rest_exhausted_in_picker_goes_straight_to_active(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.scheduler.advance(12)
        assert h.state.state == REPETITION_PICKER
        assert h.state.rest_remaining == 0

        h.machine.confirm_repetition(10)

        assert h.state.state == ACTIVE
        assert h.state.position == (0, 1)

    def test_zero_rest_segment(self):
        h = Harness(_segment(_reps("a"), _reps("b"), rest=0))
        h.start_active()
        h.machine.complete_exercise()
        assert not h.machine.rest_timer_running
        h.settle()
        h.machine.confirm_repetition(10)
        assert h.state.state == ACTIVE

    def test_skip_rest(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.machine.confirm_repetition(10)
        h.settle()

        assert h.machine.skip_rest()
        assert h.state.state == ACTIVE
        assert not h.machine.rest_timer_running

    def test_skip_rest_outside_transition_is_dropped(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        assert not h.machine.skip_rest()
        assert not h.machine.rest_complete()

    def test_time_exercise_records_seconds(self):
        h = Harness(_segment(_timed("plank", 45), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        assert h.state.pending_value == 45
        h.settle()
        h.machine.confirm_repetition(40)

        assert h.state.confirmed[0].unit == "seconds"
        assert h.state.confirmed[0].exercise_id == "plank"


class TestCountdownCues:
    def test_short_short_long(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()

        h.scheduler.advance(10)

        assert h.cues == [CueKind.SHORT, CueKind.SHORT, CueKind.LONG]

    def test_failing_sink_does_not_stop_countdown(self):
        def broken(cue):
            raise RuntimeError("no audio")

        h = Harness(_segment(_reps("a"), _reps("b")), cue_sink=broken)
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.machine.confirm_repetition(5)
        h.settle()

        h.scheduler.advance(10)

        assert h.state.state == ACTIVE
        assert h.state.position == (0, 1)


class TestPauseResume:
    def _in_transition(self) -> Harness:
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.scheduler.advance(2)
        h.machine.confirm_repetition(10)
        h.settle()
        return h

    def test_pause_suspends_both_timers(self):
        h = self._in_transition()
        elapsed = h.state.elapsed_seconds

        assert h.machine.pause()
        assert h.state.state == PAUSED
        assert not h.machine.clock_running
        assert not h.machine.rest_timer_running

        h.scheduler.advance(60)

        assert h.state.rest_remaining == 8
        assert h.state.elapsed_seconds == elapsed
        assert h.cues == []

    def test_resume_restores_previous_state(self):
        h = self._in_transition()
        h.machine.pause()
        h.scheduler.advance(60)

        assert h.machine.resume()
        assert h.state.state == TRANSITION
        assert h.machine.rest_timer_running

        h.scheduler.advance(8)
        assert h.state.state == ACTIVE

    def test_handlers_dropped_while_paused(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.pause()

        assert not h.machine.complete_exercise()
        assert not h.machine.pause()
        h.machine.resume()
        assert h.machine.complete_exercise()

    def test_pause_during_preparation(self):
        h = Harness(_segment(_reps()))
        h.machine.start()
        h.scheduler.advance(1)
        h.machine.pause()
        h.scheduler.advance(10)
        h.machine.resume()

        assert h.state.state == PREPARING
        h.scheduler.advance(2)
        assert h.state.state == ACTIVE

    def test_resume_without_pause_is_dropped(self):
        h = Harness(_segment(_reps()))
        h.start_active()
        assert not h.machine.resume()


class TestPositionAdvance:
    def test_follow_along_skips_rest(self):
        warmup = _segment(_timed("arm_circles"), _timed("hip_circles"), kind="warmup", seg_id="w")
        main = _segment(_reps("push_up"), seg_id="m")
        h = Harness(warmup, main)
        h.start_active()

        h.machine.complete_exercise()
        assert h.state.state == ACTIVE
        assert h.state.position == (0, 1)
        assert not h.machine.rest_timer_running
        h.settle()

        h.machine.complete_exercise()
        h.settle()

        assert h.state.position == (1, 0)
        assert h.state.state == ACTIVE
        assert REPETITION_PICKER not in [e.to_state for e in h.events]

    def test_empty_segments_are_skipped(self):
        h = Harness(
            _segment(seg_id="empty-1"),
            _segment(_reps("a"), seg_id="one"),
            _segment(seg_id="empty-2"),
            _segment(_reps("b"), seg_id="two"),
        )
        h.machine.start()
        assert h.state.position == (1, 0)

        h.scheduler.advance(3)
        h.machine.complete_exercise()
        h.settle()
        h.machine.confirm_repetition(5)

        assert h.state.position == (3, 0)
        assert h.state.state == TRANSITION

    def test_upcoming_and_progress(self):
        h = Harness(_segment(_reps("a"), _reps("b")), _segment(_reps("c"), seg_id="s2"))
        h.machine.start()

        assert h.machine.current_exercise().exercise_id == "a"
        assert h.machine.upcoming_exercise().exercise_id == "b"
        assert h.machine.progress() == (0, 3)


class TestCompletion:
    def _finish(self, h: Harness) -> None:
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.machine.confirm_repetition(6)

    def test_completion_is_deferred_and_fires_once(self):
        h = Harness(_segment(_reps("a")))
        self._finish(h)

        assert h.state.is_complete
        assert h.completed == []

        h.settle()
        h.machine.complete_exercise()
        h.machine.confirm_repetition(1)
        h.settle()
        h.scheduler.advance(30)

        assert len(h.completed) == 1
        assert h.completed[0].confirmed[0].value == 6

    def test_timers_stop_on_completion(self):
        h = Harness(_segment(_reps("a")))
        self._finish(h)
        h.settle()

        assert not h.machine.clock_running
        assert not h.machine.rest_timer_running
        assert h.machine.progress() == (1, 1)
        assert not h.machine.pause()

    def test_session_without_exercises_completes_immediately(self):
        h = Harness(_segment(seg_id="empty"))
        state = h.machine.start()

        assert state.is_complete
        h.settle()
        assert len(h.completed) == 1

    def test_stop_discards_state_and_suppresses_completion(self):
        h = Harness(_segment(_reps("a")))
        self._finish(h)

        last = h.machine.stop()
        h.settle()

        assert last.is_complete
        assert h.machine.state is None
        assert h.completed == []
        assert not h.machine.complete_exercise()

    def test_restart_after_stop_gets_only_its_own_completion(self):
        h = Harness(_segment(_reps("a")))
        self._finish(h)
        h.machine.stop()

        h.machine.start()
        h.settle()

        assert h.completed == []
        assert h.state.state == PREPARING

        h.scheduler.advance(3)
        h.machine.complete_exercise()
        h.settle()
        h.machine.confirm_repetition(7)
        h.settle()
        h.scheduler.advance(30)

        assert len(h.completed) == 1
        assert [c.value for c in h.completed[0].confirmed] == [7]

    def test_snapshot_is_a_copy(self):
        h = Harness(_segment(_reps("a"), _reps("b")))
        h.start_active()
        h.machine.complete_exercise()
        h.settle()
        h.machine.confirm_repetition(4)

        snap = h.machine.snapshot()
        snap.confirmed.clear()
        snap.elapsed_seconds = 999

        assert len(h.state.confirmed) == 1
        assert h.state.elapsed_seconds != 999


@pytest.mark.parametrize("rest", [0, 1, 5, 10])
def test_full_session_always_completes(rest):
    h = Harness(
        _segment(_timed("warm"), kind="warmup", seg_id="w"),
        _segment(_reps("a"), _timed("b"), _reps("c"), rest=rest, seg_id="m"),
        _segment(_timed("cool"), kind="cooldown", seg_id="c"),
    )
    h.machine.start()

    for _ in range(500):
        if h.completed:
            break
        state = h.state.state
        if state == ACTIVE:
            h.machine.complete_exercise()
        elif state == REPETITION_PICKER:
            h.machine.confirm_repetition(h.state.pending_value or 0)
        h.scheduler.advance(1)

    assert len(h.completed) == 1
    assert [c.exercise_id for c in h.completed[0].confirmed] == ["a", "b", "c"]
