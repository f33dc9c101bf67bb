"""Live session orchestration: state machine, timers and schedulers."""

from .machine import LiveSessionStateMachine, TransitionEvent, exercise_kind, picker_default, segment_rest_seconds
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .state import (
    ACTIVE,
    PAUSED,
    PREPARING,
    REPETITION_PICKER,
    TRANSITION,
    ConfirmedValue,
    SessionState,
)
from .timers import AudioCueScheduler, CueKind, cue_for

__all__ = [
    "ACTIVE",
    "PAUSED",
    "PREPARING",
    "REPETITION_PICKER",
    "TRANSITION",
    "AsyncioScheduler",
    "AudioCueScheduler",
    "ConfirmedValue",
    "CueKind",
    "LiveSessionStateMachine",
    "ManualScheduler",
    "Scheduler",
    "SessionState",
    "TransitionEvent",
    "cue_for",
    "exercise_kind",
    "picker_default",
    "segment_rest_seconds",
]
