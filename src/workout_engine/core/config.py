"""
Configuration constants for exercise selection and live sessions.

All adjustable parameters are centralized here for easy tuning.
"""

import time
from typing import Callable, Final, Generic, TypeVar

from loguru import logger

# =============================================================================
# DOMAINS
# =============================================================================

# Sub-domains a composite ("master") program can be built from, in mixing order
CORE_DOMAINS: Final[tuple[str, ...]] = ("upper_body", "lower_body", "core")

# Used when the user has no active program
DEFAULT_DOMAINS: Final[tuple[str, ...]] = ("full_body", "core")

# Used by a regular program that declares no focus domains
DEFAULT_PROGRAM_DOMAINS: Final[tuple[str, ...]] = ("full_body",)

# =============================================================================
# LEVELS & INTENSITY
# =============================================================================

MIN_LEVEL: Final[int] = 1

# Exercises with entry level above user_level + SAFETY_CEILING_OFFSET are never offered
SAFETY_CEILING_OFFSET: Final[int] = 1

# (low offset, high offset) relative to the user's level, inclusive
INTENSITY_OFFSETS: Final[dict[str, tuple[int, int]]] = {
    "high": (0, 1),
    "normal": (-2, 0),
    "low": (-5, -3),
}

DEFAULT_INTENSITY: Final[str] = "normal"

# Display level switches from "lowest sub-level" to "average" above this
BEGINNER_DISPLAY_LEVEL_MAX: Final[int] = 5

# =============================================================================
# CATALOG FALLBACK
# =============================================================================

# Cap on bodyweight-safe / last-resort candidates to keep plans compact
BODYWEIGHT_FALLBACK_LIMIT: Final[int] = 3

# =============================================================================
# LOCATIONS & GEAR
# =============================================================================

# Execution locations accepted from callers
LOCATIONS: Final[frozenset[str]] = frozenset(
    {"home", "park", "street", "office", "school", "gym", "airport", "library"}
)

GEAR_PRIORITY_BY_LOCATION: Final[dict[str, tuple[str, ...]]] = {
    "home": ("user_gear", "improvised"),
    "office": ("user_gear", "improvised"),
    "school": ("user_gear", "improvised"),
    "park": ("fixed_equipment", "user_gear", "improvised"),
    "gym": ("fixed_equipment", "user_gear", "improvised"),
}
DEFAULT_GEAR_PRIORITY: Final[tuple[str, ...]] = ("user_gear", "improvised")

# Execution location → location class used by gym-equipment definitions
EQUIPMENT_LOCATION_MAP: Final[dict[str, str]] = {
    "home": "home",
    "park": "park",
    "street": "park",
    "office": "office",
    "school": "office",
    "gym": "gym",
}
DEFAULT_EQUIPMENT_LOCATION: Final[str] = "park"

# =============================================================================
# WORKOUT PLAN
# =============================================================================

DEFAULT_WORKOUT_MINUTES: Final[int] = 45
DEFAULT_WORKOUT_NAME: Final[str] = "Default Workout"
DEFAULT_PROGRAM_WORKOUT_NAME: Final[str] = "Workout"
DEFAULT_MASTER_WORKOUT_NAME: Final[str] = "Full Body Workout"

# =============================================================================
# LIVE SESSION
# =============================================================================

DEFAULT_REST_SECONDS: Final[int] = 10
PREPARATION_COUNTDOWN_SECONDS: Final[int] = 3
TICK_SECONDS: Final[float] = 1.0

# Default duration for time/follow-along exercises without an explicit target
DEFAULT_EXERCISE_SECONDS: Final[int] = 30

# Remaining-seconds values at which the rest countdown plays a cue
SHORT_CUE_AT: Final[frozenset[int]] = frozenset({3, 2})
LONG_CUE_AT: Final[frozenset[int]] = frozenset({1})

FOLLOW_ALONG_SEGMENT_KINDS: Final[frozenset[str]] = frozenset({"warmup", "cooldown"})


# =============================================================================
# DEFINITION CACHE
# =============================================================================

T = TypeVar("T")


class DefinitionCache(Generic[T]):
    """
    Caller-owned memo for a fetched list of definitions.

    The loader is called lazily on the first ``get()`` and again after
    ``invalidate()`` or once ``ttl_seconds`` have elapsed.  A failing loader
    is logged and yields an empty list; the failure is not cached, and
    ``failed`` stays set until a later load succeeds.
    """

    def __init__(
        self,
        loader: Callable[[], list[T]],
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "definitions",
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._name = name
        self._items: list[T] | None = None
        self._loaded_at = 0.0
        self._failed = False

    @property
    def failed(self) -> bool:
        """True when the most recent load attempt raised."""
        return self._failed

    def get(self) -> list[T]:
        if self._items is not None and not self._expired():
            return self._items
        try:
            items = list(self._loader())
        except Exception as exc:
            logger.error(f"Error loading {self._name}: {exc}")
            self._failed = True
            return []
        self._failed = False
        self._items = items
        self._loaded_at = self._clock()
        return items

    def invalidate(self) -> None:
        self._items = None

    def _expired(self) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - self._loaded_at >= self._ttl
