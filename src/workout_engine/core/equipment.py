"""
Equipment matching.

Decides whether a user / location / park combination satisfies an
exercise's gear requirement.

Check order (first satisfied wins)
----------------------------------
1. An execution method can be selected for the location
2. Alternative requirements, by ascending priority number:
     gym_equipment : installed at the park, or owned by the user, and
                     available at this location class
     urban_asset   : always (benches, steps, walls are everywhere)
     user_gear     : owned by the user
   None satisfied → not performable.
3. Legacy ``required_gym_equipment`` must be installed at the park
4. Nothing declared → trivially performable
"""

from __future__ import annotations

from .config import (
    DEFAULT_EQUIPMENT_LOCATION,
    EQUIPMENT_LOCATION_MAP,
    DefinitionCache,
)
from .methods import select_execution_method
from .models import (
    AlternativeEquipmentRequirement,
    Exercise,
    GymEquipment,
    Location,
    Park,
    UserProfile,
)


def equipment_location(location: Location) -> str:
    """Map an execution location to the location class used by equipment definitions."""
    return EQUIPMENT_LOCATION_MAP.get(location, DEFAULT_EQUIPMENT_LOCATION)


def is_equipment_available_in_location(
    equipment_id: str,
    location: Location,
    gym_equipment: DefinitionCache[GymEquipment] | None,
) -> bool:
    """
    Return True if gym equipment *equipment_id* may be used at *location*.

    Without a cache, or when loading the definitions failed, every piece of
    equipment counts as available.  A loaded catalog (even an empty one)
    that does not contain *equipment_id* makes it unavailable.  A definition
    without a location list is available everywhere; one with an empty list
    is available nowhere.
    """
    if gym_equipment is None:
        return True
    definitions = gym_equipment.get()
    if gym_equipment.failed:
        return True
    for definition in definitions:
        if definition.id == equipment_id:
            if definition.available_in_locations is None:
                return True
            return equipment_location(location) in definition.available_in_locations
    return False


def requirement_satisfied(
    requirement: AlternativeEquipmentRequirement,
    park: Park | None,
    profile: UserProfile,
    location: Location,
    gym_equipment: DefinitionCache[GymEquipment] | None = None,
) -> bool:
    """Return True if a single alternative requirement is met in this context."""
    if requirement.kind == "gym_equipment":
        eq_id = requirement.equipment_id
        if not eq_id:
            return False
        if park is not None and park.has_equipment(eq_id):
            if is_equipment_available_in_location(eq_id, location, gym_equipment):
                return True
        if profile.equipment.owns(eq_id):
            return is_equipment_available_in_location(eq_id, location, gym_equipment)
        return False

    if requirement.kind == "urban_asset":
        return True

    if requirement.kind == "user_gear":
        return bool(requirement.gear_id) and profile.equipment.owns(requirement.gear_id)

    return False


def can_perform_exercise(
    exercise: Exercise,
    park: Park | None,
    profile: UserProfile,
    location: Location = "park",
    gym_equipment: DefinitionCache[GymEquipment] | None = None,
) -> bool:
    """
    Return True if *exercise* can be performed in this context.

    Args:
        exercise: Catalog exercise
        park: Park at the location, if any
        profile: User profile (owned gear)
        location: Execution location
        gym_equipment: Optional cache of gym-equipment definitions used for
            location availability checks

    Returns:
        True if performable
    """
    if select_execution_method(exercise, location, park, profile) is not None:
        return True

    if exercise.alternative_requirements:
        for requirement in sorted(exercise.alternative_requirements, key=lambda r: r.priority):
            if requirement_satisfied(requirement, park, profile, location, gym_equipment):
                return True
        return False

    if exercise.required_gym_equipment:
        return park is not None and park.has_equipment(exercise.required_gym_equipment)

    # required_user_gear is informational only
    return True


def matches_user_equipment(exercise: Exercise, profile: UserProfile) -> bool:
    """
    True if one of the exercise's requirements is met by gear the user owns.

    Used to flag exercises that were picked because of the user's own
    equipment.
    """
    for req in exercise.alternative_requirements:
        if req.kind == "user_gear" and req.gear_id and profile.equipment.owns(req.gear_id):
            return True
        if req.kind == "gym_equipment" and req.equipment_id and profile.equipment.owns(req.equipment_id):
            return True
    return False


def is_bodyweight_safe(exercise: Exercise) -> bool:
    """
    True if *exercise* needs no equipment beyond urban assets.

    Exercises with no alternative requirements and no legacy equipment
    fields qualify, as do those whose every requirement is an urban asset.
    """
    if exercise.required_gym_equipment or exercise.required_user_gear:
        return False
    return all(req.kind == "urban_asset" for req in exercise.alternative_requirements)
