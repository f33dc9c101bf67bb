"""
Execution-method selection.

Given an exercise and a training context (location, park, user), pick the
one concrete way the exercise will be performed.

Pipeline
--------
1. Location:     keep methods offered at the location (mandatory; empty → None)
2. Lifestyle:    keep untagged methods or those matching the user's inferred tags
3. Owned gear:   keep methods whose specific gear the user owns (empty → revert)
4. Priority:     walk gear types in location order, return the first method
                 whose equipment is actually available
5. Fallback:     first method left after step 3

Gear-type priority
------------------
  home / office / school : user_gear → improvised
  park / gym             : fixed_equipment → user_gear → improvised
  anything else          : user_gear → improvised
"""

from __future__ import annotations

from dataclasses import replace

from .config import DEFAULT_GEAR_PRIORITY, GEAR_PRIORITY_BY_LOCATION, DefinitionCache
from .models import ExecutionMethod, Exercise, GymEquipment, Location, Park, UserProfile


def infer_lifestyle_tags(profile: UserProfile) -> list[str]:
    """
    Infer lifestyle tags from profile answers.

    This is a heuristic, not something the user declares:
      main goal "healthy_lifestyle" → athlete
      commute by car or bus         → office_worker
      any scheduled training days   → student, parent
    """
    tags: list[str] = []
    if profile.main_goal == "healthy_lifestyle":
        tags.append("athlete")
    if profile.lifestyle.commute_method in ("car", "bus"):
        tags.append("office_worker")
    if profile.lifestyle.schedule_days:
        tags.extend(["student", "parent"])
    return tags


def gear_priority(location: Location) -> tuple[str, ...]:
    """Gear-type order tried at *location*."""
    return GEAR_PRIORITY_BY_LOCATION.get(location, DEFAULT_GEAR_PRIORITY)


def _owns_required_gear(method: ExecutionMethod, profile: UserProfile) -> bool:
    if method.equipment_id:
        return profile.equipment.owns(method.equipment_id)
    if method.gear_type == "user_gear" and method.all_gear_ids():
        return any(profile.equipment.owns(g) for g in method.all_gear_ids())
    return True


def is_method_available(
    method: ExecutionMethod,
    park: Park | None,
    profile: UserProfile,
) -> bool:
    """
    True if the gear *method* needs is actually at hand.

    fixed_equipment: any listed equipment (or gear) id installed at the park
    user_gear:       any listed gear id owned by the user
    improvised:      always
    """
    if method.gear_type == "fixed_equipment":
        ids = [*method.all_equipment_ids(), *method.all_gear_ids()]
        if not ids or park is None or not park.gym_equipment:
            return False
        return any(park.has_equipment(i) for i in ids)
    if method.gear_type == "user_gear":
        return any(profile.equipment.owns(g) for g in method.all_gear_ids())
    return True


def select_execution_method(
    exercise: Exercise,
    location: Location,
    park: Park | None,
    profile: UserProfile,
) -> ExecutionMethod | None:
    """
    Select the execution method for *exercise* in this context.

    Pure function of its inputs: identical calls return the same method.

    Args:
        exercise: Catalog exercise
        location: Execution location (e.g. "park", "home")
        park: Park the user trains at, if any
        profile: User profile (owned gear, lifestyle answers)

    Returns:
        The selected ExecutionMethod, or None if the exercise has no method
        for this location
    """
    if not exercise.execution_methods:
        return None

    by_location = [m for m in exercise.execution_methods if m.supports(location)]
    if not by_location:
        return None

    user_tags = set(infer_lifestyle_tags(profile))
    by_lifestyle = [
        m for m in by_location
        if not m.lifestyle_tags or user_tags.intersection(m.lifestyle_tags)
    ]

    by_gear = [m for m in by_lifestyle if _owns_required_gear(m, profile)]
    candidates = by_gear or by_lifestyle
    if not candidates:
        return None

    for gear_type in gear_priority(location):
        for method in candidates:
            if method.gear_type == gear_type and is_method_available(method, park, profile):
                return method

    return candidates[0]


def select_execution_method_with_brand(
    exercise: Exercise,
    location: Location,
    park: Park | None,
    profile: UserProfile,
    gym_equipment: DefinitionCache[GymEquipment] | None = None,
) -> ExecutionMethod | None:
    """
    Like select_execution_method, but prefer installed park equipment.

    At a park, the first fixed-equipment method whose equipment is installed
    wins.  If the installed brand has its own video, the returned method is
    a copy whose main video is the brand video.
    """
    if location == "park" and park is not None and park.gym_equipment:
        definitions = {d.id: d for d in (gym_equipment.get() if gym_equipment else [])}
        for method in exercise.execution_methods:
            if not method.supports(location) or method.gear_type != "fixed_equipment":
                continue
            for eq_id in [*method.all_equipment_ids(), *method.all_gear_ids()]:
                installed = park.find_equipment(eq_id)
                if installed is None:
                    continue
                definition = definitions.get(eq_id)
                brand = definition.brand(installed.brand_name) if definition else None
                if brand is not None and brand.video_url:
                    return replace(method, media=replace(method.media, main_video_url=brand.video_url))
                return method

    return select_execution_method(exercise, location, park, profile)
