"""
Workout plan assembly for workout-engine.

Composes per-domain candidate lists into one ordered plan:

- no active program  → default domains at the user's raw domain levels
- regular program    → the program's focus domains, kept in fetch order
- composite program  → sub-program domains at their hidden sub-levels,
                       interleaved round-robin so the session alternates
                       muscle groups

Store failures never fail generation: a missing program degrades to the
defaults and a failing exercise query to an empty domain.
"""

from __future__ import annotations

import uuid
from typing import Protocol, Sequence, TypeVar

from loguru import logger

from .catalog import ExerciseCatalogFilter
from .config import (
    CORE_DOMAINS,
    DEFAULT_DOMAINS,
    DEFAULT_INTENSITY,
    DEFAULT_MASTER_WORKOUT_NAME,
    DEFAULT_PROGRAM_DOMAINS,
    DEFAULT_PROGRAM_WORKOUT_NAME,
    DEFAULT_WORKOUT_MINUTES,
    DEFAULT_WORKOUT_NAME,
    DefinitionCache,
)
from .levels import domain_level, effective_level
from .models import (
    ActiveProgram,
    Domain,
    Exercise,
    GymEquipment,
    Location,
    Park,
    PlannedExercise,
    Program,
    SessionExercise,
    UserProfile,
    WorkoutPlan,
    WorkoutSegment,
)

T = TypeVar("T")


class ContentSource(Protocol):
    """The slice of the content store that plan generation reads."""

    def program_by_id(self, program_id: str) -> Program | None: ...

    def exercises_by_domain(self, domain: Domain) -> list[Exercise]: ...


def mix_by_domain(per_domain: dict[Domain, Sequence[T]], domains: Sequence[Domain]) -> list[T]:
    """
    Interleave per-domain lists round-robin.

    Given A=[a0, a1], B=[b0, b1, b2], C=[c0] the result is
    [a0, b0, c0, a1, b1, b2]: shorter lists simply stop contributing.
    """
    mixed: list[T] = []
    longest = max((len(per_domain.get(d, ())) for d in domains), default=0)
    for i in range(longest):
        for domain in domains:
            items = per_domain.get(domain, ())
            if i < len(items):
                mixed.append(items[i])
    return mixed


def _new_plan_id() -> str:
    return f"workout-{uuid.uuid4().hex[:12]}"


def _master_domains(program: Program) -> list[Domain]:
    """Core domains the composite program declares, in mixing order."""
    domains = [d for d in CORE_DOMAINS if d in program.sub_programs]
    return domains or list(CORE_DOMAINS)


def _lookup_program(store: ContentSource, active: ActiveProgram) -> Program | None:
    try:
        program = store.program_by_id(active.id)
        if program is None and active.template_id:
            program = store.program_by_id(active.template_id)
        return program
    except Exception as exc:
        logger.error(f"Error fetching program details for {active.id}: {exc}")
        return None


class WorkoutPlanAssembler:
    """
    Builds WorkoutPlans from a content store.

    Holds the catalog filter (and through it the equipment-definition
    cache) so repeated generations share one cache.
    """

    def __init__(
        self,
        store: ContentSource,
        gym_equipment: DefinitionCache[GymEquipment] | None = None,
    ):
        self.store = store
        self.catalog = ExerciseCatalogFilter(self._fetch_domain, gym_equipment=gym_equipment)

    def _fetch_domain(self, domain: Domain) -> list[Exercise]:
        try:
            return list(self.store.exercises_by_domain(domain))
        except Exception as exc:
            logger.error(f"Error fetching exercises for {domain}: {exc}")
            return []

    def generate(
        self,
        profile: UserProfile,
        target_duration: int | None = None,
        park: Park | None = None,
        intensity: str = DEFAULT_INTENSITY,
        location: Location | None = None,
    ) -> WorkoutPlan | None:
        """
        Generate a workout plan for *profile*.

        Args:
            profile: User profile
            target_duration: Target duration in minutes (default 45)
            park: Park the user trains at, if any
            intensity: "high" | "normal" | "low"
            location: Execution location (default "park" with a park, else "street")

        Returns:
            A new WorkoutPlan
        """
        active = profile.active_program
        if active is None:
            plan = self._default_plan(profile, target_duration, park, intensity, location)
        else:
            program = _lookup_program(self.store, active)
            if program is not None and program.is_master:
                plan = self._master_plan(profile, program, target_duration, park, intensity, location)
            else:
                plan = self._program_plan(profile, active, program, target_duration, park, intensity, location)

        logger.info(
            f"Generated plan {plan.id} '{plan.name}': {len(plan.exercises)} exercises "
            f"across {', '.join(plan.focus_domains)} (intensity={intensity})"
        )
        return plan

    def _domain_candidates(
        self,
        profile: UserProfile,
        domain: Domain,
        level: int,
        park: Park | None,
        intensity: str,
        location: Location | None,
    ) -> list[PlannedExercise]:
        return self.catalog.planned(domain, level, intensity, park, profile, location)

    def _default_plan(self, profile, target_duration, park, intensity, location) -> WorkoutPlan:
        domains = list(DEFAULT_DOMAINS)
        exercises: list[PlannedExercise] = []
        for domain in domains:
            level = domain_level(profile, domain)
            exercises.extend(self._domain_candidates(profile, domain, level, park, intensity, location))
        return self._plan(DEFAULT_WORKOUT_NAME, exercises, target_duration, domains)

    def _program_plan(
        self,
        profile: UserProfile,
        active: ActiveProgram,
        program: Program | None,
        target_duration,
        park,
        intensity,
        location,
    ) -> WorkoutPlan:
        domains = list(
            active.focus_domains
            or (program.focus_domains if program is not None else [])
            or DEFAULT_PROGRAM_DOMAINS
        )
        exercises: list[PlannedExercise] = []
        for domain in domains:
            level = effective_level(profile, domain)
            exercises.extend(self._domain_candidates(profile, domain, level, park, intensity, location))
        name = active.name or (program.name if program is not None else "") or DEFAULT_PROGRAM_WORKOUT_NAME
        return self._plan(name, exercises, target_duration, domains)

    def _master_plan(
        self,
        profile: UserProfile,
        program: Program,
        target_duration,
        park,
        intensity,
        location,
    ) -> WorkoutPlan:
        domains = _master_domains(program)
        per_domain: dict[Domain, list[PlannedExercise]] = {}
        for domain in domains:
            level = effective_level(profile, domain)
            per_domain[domain] = self._domain_candidates(profile, domain, level, park, intensity, location)
        exercises = mix_by_domain(per_domain, domains)
        return self._plan(program.name or DEFAULT_MASTER_WORKOUT_NAME, exercises, target_duration, domains)

    @staticmethod
    def _plan(
        name: str,
        exercises: list[PlannedExercise],
        target_duration: int | None,
        domains: list[Domain],
    ) -> WorkoutPlan:
        return WorkoutPlan(
            id=_new_plan_id(),
            name=name,
            exercises=tuple(exercises),
            estimated_duration=target_duration or DEFAULT_WORKOUT_MINUTES,
            focus_domains=tuple(domains),
        )


def generate_workout_plan(
    profile: UserProfile,
    store: ContentSource,
    target_duration: int | None = None,
    park: Park | None = None,
    intensity: str = DEFAULT_INTENSITY,
    location: Location | None = None,
    gym_equipment: DefinitionCache[GymEquipment] | None = None,
) -> WorkoutPlan | None:
    """Generate a workout plan; see WorkoutPlanAssembler.generate."""
    assembler = WorkoutPlanAssembler(store, gym_equipment=gym_equipment)
    return assembler.generate(profile, target_duration, park, intensity, location)


# =============================================================================
# PLAN → SESSION SEGMENTS
# =============================================================================


def to_session_exercise(planned: PlannedExercise, lang: str = "en") -> SessionExercise:
    ex = planned.exercise
    return SessionExercise(
        exercise_id=ex.id,
        name=ex.display_name(lang),
        exercise_type=ex.exercise_type,
        role=ex.role,
        target_reps=ex.target_reps,
        duration_seconds=ex.duration_seconds,
        method=planned.method,
    )


def build_session_segments(
    plan: WorkoutPlan,
    rest_seconds: int | None = None,
    warmup: Sequence[SessionExercise] = (),
    cooldown: Sequence[SessionExercise] = (),
    lang: str = "en",
) -> tuple[WorkoutSegment, ...]:
    """
    Lay a plan out as session segments.

    The plan's exercises form one main segment; optional warm-up and
    cool-down exercises become follow-along segments around it.
    """
    segments: list[WorkoutSegment] = []
    if warmup:
        segments.append(
            WorkoutSegment(id=f"{plan.id}-warmup", title="Warm-up", kind="warmup", exercises=tuple(warmup))
        )
    segments.append(
        WorkoutSegment(
            id=f"{plan.id}-main",
            title=plan.name,
            kind="main",
            exercises=tuple(to_session_exercise(p, lang) for p in plan.exercises),
            rest_between_exercises=rest_seconds,
        )
    )
    if cooldown:
        segments.append(
            WorkoutSegment(id=f"{plan.id}-cooldown", title="Cool-down", kind="cooldown", exercises=tuple(cooldown))
        )
    return tuple(segments)
