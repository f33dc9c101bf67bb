"""
Live session state.

SessionState is created when a session starts and discarded when it ends.
It is mutated only by LiveSessionStateMachine.
"""

from dataclasses import dataclass, field
from typing import Literal, Union

from ..config import PREPARATION_COUNTDOWN_SECONDS

MachineState = Literal["PREPARING", "ACTIVE", "REPETITION_PICKER", "TRANSITION", "PAUSED"]
ExerciseKind = Literal["reps", "time", "follow-along"]
Trigger = Literal["complete_exercise", "confirm_repetition", "skip_rest", "rest_complete"]

PREPARING: MachineState = "PREPARING"
ACTIVE: MachineState = "ACTIVE"
REPETITION_PICKER: MachineState = "REPETITION_PICKER"
TRANSITION: MachineState = "TRANSITION"
PAUSED: MachineState = "PAUSED"

# States in which the rest countdown runs
REST_STATES: frozenset[str] = frozenset({REPETITION_PICKER, TRANSITION})


# =============================================================================
# TRANSITION GUARD
# =============================================================================


@dataclass(frozen=True)
class Idle:
    """No transition in flight; handlers may run."""


@dataclass(frozen=True)
class TransitionPending:
    """
    A handler has started a transition that is not yet observed as committed.

    ``awaits`` names what the release observer waits for: a change of
    (segment, exercise) position, or a change of machine state.
    """

    trigger: Trigger
    awaits: Literal["position", "state"]
    origin_position: tuple[int, int]
    origin_state: MachineState


TransitionGuard = Union[Idle, TransitionPending]

IDLE = Idle()


# =============================================================================
# SESSION STATE
# =============================================================================


@dataclass(frozen=True)
class ConfirmedValue:
    """A rep count or duration the user confirmed in the picker."""

    segment_index: int
    exercise_index: int
    exercise_id: str
    value: int
    unit: Literal["reps", "seconds"]


@dataclass
class SessionState:
    segment_index: int = 0
    exercise_index: int = 0
    state: MachineState = PREPARING
    elapsed_seconds: int = 0
    preparation_countdown: int = PREPARATION_COUNTDOWN_SECONDS
    rest_duration: int = 0
    rest_remaining: int = 0
    pending_value: int | None = None  # value pre-filled in the picker
    last_confirmed_value: int | None = None
    is_paused: bool = False
    resume_state: MachineState | None = None
    guard: TransitionGuard = IDLE
    is_complete: bool = False
    confirmed: list[ConfirmedValue] = field(default_factory=list)

    @property
    def position(self) -> tuple[int, int]:
        return self.segment_index, self.exercise_index

    @property
    def is_locked(self) -> bool:
        return isinstance(self.guard, TransitionPending)
