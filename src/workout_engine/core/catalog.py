"""
Exercise catalog filtering.

Turns the exercises registered for a domain into an ordered list of
candidates for one user, trading level precision for availability:

    domain pool
      └─ safety ceiling (entry level <= U + 1, always)
           └─ level strategies:       intensity band → full safety pool
                └─ feasibility strategies: performable → bodyweight-safe (cap 3)
                                           → least demanding (cap 3)

Each strategy returns either a non-empty list or None ("no match"); the
first strategy that matches wins.  As long as one exercise passes the
safety ceiling, the result is never empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from loguru import logger

from .config import BODYWEIGHT_FALLBACK_LIMIT, DEFAULT_INTENSITY, DefinitionCache
from .equipment import can_perform_exercise, is_bodyweight_safe, matches_user_equipment
from .levels import in_band, intensity_band, min_entry_level, within_safety_ceiling
from .methods import select_execution_method_with_brand
from .models import (
    Domain,
    Exercise,
    GymEquipment,
    Location,
    Park,
    PlannedExercise,
    UserProfile,
)


@dataclass(frozen=True)
class FilterContext:
    """Everything a filter strategy may look at."""

    domain: Domain
    user_level: int
    intensity: str
    park: Park | None
    profile: UserProfile | None
    location: Location
    active_program_id: str | None = None
    gym_equipment: DefinitionCache[GymEquipment] | None = None

    def entry_level(self, exercise: Exercise) -> int:
        return min_entry_level(exercise, self.active_program_id)


class FilterStrategy(Protocol):
    name: str

    def apply(self, pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise] | None: ...


def _non_empty(items: list[Exercise]) -> list[Exercise] | None:
    return items or None


# ---------------------------------------------------------------------------
# Level strategies
# ---------------------------------------------------------------------------


class IntensityBandStrategy:
    """Exercises whose entry level falls in the requested intensity band."""

    name = "intensity_band"

    def apply(self, pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise] | None:
        band = intensity_band(ctx.user_level, ctx.intensity)
        return _non_empty([ex for ex in pool if in_band(ctx.entry_level(ex), band)])


class SafetyPoolStrategy:
    """The whole safety-filtered pool, ignoring intensity."""

    name = "safety_pool"

    def apply(self, pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise] | None:
        return _non_empty(list(pool))


# ---------------------------------------------------------------------------
# Feasibility strategies
# ---------------------------------------------------------------------------


class PerformableStrategy:
    """Exercises the user can perform with the equipment at hand."""

    name = "performable"

    def apply(self, pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise] | None:
        if ctx.profile is None:
            return _non_empty(list(pool))
        return _non_empty([
            ex for ex in pool
            if can_perform_exercise(ex, ctx.park, ctx.profile, ctx.location, ctx.gym_equipment)
        ])


class BodyweightStrategy:
    """Exercises needing nothing beyond urban assets, capped."""

    name = "bodyweight"

    def __init__(self, limit: int = BODYWEIGHT_FALLBACK_LIMIT):
        self.limit = limit

    def apply(self, pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise] | None:
        return _non_empty([ex for ex in pool if is_bodyweight_safe(ex)][: self.limit])


class LeastDemandingStrategy:
    """The lowest-entry-level exercises of the pool, capped."""

    name = "least_demanding"

    def __init__(self, limit: int = BODYWEIGHT_FALLBACK_LIMIT):
        self.limit = limit

    def apply(self, pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise] | None:
        ranked = sorted(pool, key=ctx.entry_level)
        return _non_empty(ranked[: self.limit])


LEVEL_STRATEGIES: tuple[FilterStrategy, ...] = (
    IntensityBandStrategy(),
    SafetyPoolStrategy(),
)

FEASIBILITY_STRATEGIES: tuple[FilterStrategy, ...] = (
    PerformableStrategy(),
    BodyweightStrategy(),
    LeastDemandingStrategy(),
)


def first_match(
    strategies: Sequence[FilterStrategy],
    pool: Sequence[Exercise],
    ctx: FilterContext,
) -> tuple[str | None, list[Exercise]]:
    """
    Apply *strategies* in order; return (strategy name, result) of the first match.

    Returns (None, []) if no strategy matches.
    """
    for strategy in strategies:
        result = strategy.apply(pool, ctx)
        if result:
            return strategy.name, result
    return None, []


def safety_filter(pool: Sequence[Exercise], ctx: FilterContext) -> list[Exercise]:
    """Drop exercises above the safety ceiling, regardless of intensity."""
    return [ex for ex in pool if within_safety_ceiling(ctx.entry_level(ex), ctx.user_level)]


class ExerciseCatalogFilter:
    """
    Selects candidate exercises for one domain.

    ``fetch_exercises`` is the content-store query for a domain; strategies
    can be replaced for testing or tuning.
    """

    def __init__(
        self,
        fetch_exercises: Callable[[Domain], list[Exercise]],
        gym_equipment: DefinitionCache[GymEquipment] | None = None,
        level_strategies: Sequence[FilterStrategy] = LEVEL_STRATEGIES,
        feasibility_strategies: Sequence[FilterStrategy] = FEASIBILITY_STRATEGIES,
    ):
        self._fetch = fetch_exercises
        self.gym_equipment = gym_equipment
        self.level_strategies = tuple(level_strategies)
        self.feasibility_strategies = tuple(feasibility_strategies)

    def candidates(
        self,
        domain: Domain,
        user_level: int,
        intensity: str = DEFAULT_INTENSITY,
        park: Park | None = None,
        profile: UserProfile | None = None,
        location: Location | None = None,
    ) -> list[Exercise]:
        """
        Ordered candidate exercises for *domain*.

        Args:
            domain: Training domain
            user_level: Effective level of the user in this domain
            intensity: "high" | "normal" | "low"
            park: Park at the location, if any
            profile: User profile; without one, feasibility is not checked
            location: Execution location (default: "park" with a park, else "street")

        Returns:
            Candidate exercises in catalog order (empty only if nothing
            passes the safety ceiling)
        """
        ctx = self._context(domain, user_level, intensity, park, profile, location)
        return self._select(ctx)

    def planned(
        self,
        domain: Domain,
        user_level: int,
        intensity: str = DEFAULT_INTENSITY,
        park: Park | None = None,
        profile: UserProfile | None = None,
        location: Location | None = None,
    ) -> list[PlannedExercise]:
        """Candidates wrapped with their selected method, difficulty and gear flag."""
        ctx = self._context(domain, user_level, intensity, park, profile, location)
        planned: list[PlannedExercise] = []
        for ex in self._select(ctx):
            method = (
                select_execution_method_with_brand(ex, ctx.location, park, profile, self.gym_equipment)
                if profile is not None else None
            )
            planned.append(
                PlannedExercise(
                    exercise=ex,
                    method=method,
                    difficulty=ctx.entry_level(ex),
                    matches_user_equipment=(
                        matches_user_equipment(ex, profile) if profile is not None else False
                    ),
                )
            )
        return planned

    def _context(
        self,
        domain: Domain,
        user_level: int,
        intensity: str,
        park: Park | None,
        profile: UserProfile | None,
        location: Location | None,
    ) -> FilterContext:
        active = profile.active_program if profile is not None else None
        return FilterContext(
            domain=domain,
            user_level=user_level,
            intensity=intensity,
            park=park,
            profile=profile,
            location=location or ("park" if park is not None else "street"),
            active_program_id=active.catalog_id if active is not None else None,
            gym_equipment=self.gym_equipment,
        )

    def _select(self, ctx: FilterContext) -> list[Exercise]:
        pool = [ex for ex in self._fetch(ctx.domain) if ex.belongs_to(ctx.domain)]
        safe = safety_filter(pool, ctx)
        if not safe:
            logger.debug(f"No exercises within the safety ceiling for {ctx.domain} at level {ctx.user_level}")
            return []

        level_name, by_level = first_match(self.level_strategies, safe, ctx)
        feasibility_name, result = first_match(self.feasibility_strategies, by_level, ctx)
        logger.debug(
            f"Candidates for {ctx.domain}: {len(result)} "
            f"(level={level_name}, feasibility={feasibility_name})"
        )
        return result
