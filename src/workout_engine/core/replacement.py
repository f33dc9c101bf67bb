"""
Exercise substitution.

Offers replacements for an exercise in a running plan:

- variations:   same base movement (family), different level
- alternatives: same movement group, different exercise

Both keep only exercises within one level of the current level that have
an execution method for the current location, and sort them by level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Literal

from loguru import logger

from .config import DefinitionCache
from .levels import min_entry_level
from .methods import select_execution_method_with_brand
from .models import ExecutionMethod, Exercise, GymEquipment, Location, Park, UserProfile

LevelComparison = Literal["lower", "same", "higher"]


@dataclass(frozen=True)
class ReplacementOption:
    exercise: Exercise
    method: ExecutionMethod
    level: int
    level_comparison: LevelComparison


def _compare(level: int, current_level: int) -> LevelComparison:
    if level < current_level:
        return "lower"
    if level > current_level:
        return "higher"
    return "same"


def _options(
    current: Exercise,
    catalog: Iterable[Exercise],
    same_family: Callable[[Exercise], bool],
    current_level: int,
    location: Location,
    park: Park | None,
    profile: UserProfile,
    active_program_id: str | None,
    gym_equipment: DefinitionCache[GymEquipment] | None,
) -> list[ReplacementOption]:
    options: list[ReplacementOption] = []
    for ex in catalog:
        if ex.id == current.id or not same_family(ex):
            continue
        level = min_entry_level(ex, active_program_id)
        if abs(level - current_level) > 1:
            continue
        if not any(m.supports(location) for m in ex.execution_methods):
            continue
        method = select_execution_method_with_brand(ex, location, park, profile, gym_equipment)
        if method is None:
            continue
        options.append(ReplacementOption(ex, method, level, _compare(level, current_level)))
    return sorted(options, key=lambda o: o.level)


def exercise_variations(
    current: Exercise,
    catalog: Iterable[Exercise],
    current_level: int,
    location: Location,
    park: Park | None,
    profile: UserProfile,
    active_program_id: str | None = None,
    gym_equipment: DefinitionCache[GymEquipment] | None = None,
) -> list[ReplacementOption]:
    """
    Variations of *current*: exercises sharing its base movement.

    Returns an empty list (and logs a warning) if *current* has no base
    movement id.
    """
    if not current.base_movement_id:
        logger.warning(
            f"Exercise '{current.display_name()}' ({current.id}) has no base_movement_id; "
            "cannot offer variations"
        )
        return []
    return _options(
        current,
        catalog,
        lambda ex: ex.base_movement_id == current.base_movement_id,
        current_level,
        location,
        park,
        profile,
        active_program_id,
        gym_equipment,
    )


def alternative_exercises(
    current: Exercise,
    catalog: Iterable[Exercise],
    current_level: int,
    location: Location,
    park: Park | None,
    profile: UserProfile,
    active_program_id: str | None = None,
    gym_equipment: DefinitionCache[GymEquipment] | None = None,
) -> list[ReplacementOption]:
    """Alternatives to *current*: other exercises of the same movement group."""
    if not current.movement_group:
        return []
    return _options(
        current,
        catalog,
        lambda ex: ex.movement_group == current.movement_group,
        current_level,
        location,
        park,
        profile,
        active_program_id,
        gym_equipment,
    )
