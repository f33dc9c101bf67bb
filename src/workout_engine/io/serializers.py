"""
Document serialization for workout-engine models.

Handles conversion between JSON/YAML-compatible dicts and dataclasses.
"""

from typing import Any

from ..core.models import (
    GEAR_TYPES,
    REQUIREMENT_KINDS,
    ActiveProgram,
    AlternativeEquipmentRequirement,
    DomainProgress,
    EquipmentBrand,
    EquipmentProfile,
    ExecutionMethod,
    Exercise,
    GearDefinition,
    GymEquipment,
    Lifestyle,
    MethodMedia,
    Park,
    ParkEquipment,
    PlannedExercise,
    Program,
    ProgramAnchor,
    UserProfile,
    WorkoutPlan,
)
from ..core.session.state import SessionState


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Args:
        value: Value to validate
        name: Name for error message

    Returns:
        The value if valid

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def validate_positive(value: int | float, name: str) -> int | float:
    """
    Validate that a value is positive.

    Raises:
        ValidationError: If value is not positive
    """
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    return value


def validate_choice(value: Any, choices: tuple, name: str) -> Any:
    if value not in choices:
        raise ValidationError(f"Invalid {name}: {value!r}. Must be one of {choices}")
    return value


def _require(data: dict[str, Any], key: str, what: str) -> Any:
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must be a mapping, got {type(data).__name__}")
    value = data.get(key)
    if value is None or value == "":
        raise ValidationError(f"{what} is missing required field '{key}'")
    return value


def _str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{name} must be a list, got {type(value).__name__}")
    return [str(v) for v in value]


# =============================================================================
# USER PROFILE
# =============================================================================


def dict_to_user_profile(data: dict[str, Any]) -> UserProfile:
    """
    Convert dict to UserProfile.

    Accepted shape::

        {
          "id": "u1",
          "domains": {"upper_body": {"current_level": 4, "max_level": 10}},
          "equipment": {"home": ["rings"], "office": [], "outdoor": []},
          "active_programs": [{"id": "p1", "template_id": "full_body"}],
          "master_sub_levels": {"p1": {"upper_body": 3}},
          "main_goal": "healthy_lifestyle",
          "lifestyle": {"commute_method": "bike", "has_dog": true}
        }

    Args:
        data: Dict representation

    Returns:
        UserProfile instance

    Raises:
        ValidationError: If data is invalid
    """
    user_id = _require(data, "id", "User profile")

    domains: dict[str, DomainProgress] = {}
    for domain, raw in (data.get("domains") or {}).items():
        if isinstance(raw, int):
            raw = {"current_level": raw}
        level = int(raw.get("current_level", 1))
        validate_non_negative(level, f"domains.{domain}.current_level")
        try:
            domains[domain] = DomainProgress(
                current_level=level,
                max_level=int(raw.get("max_level", 10)),
                is_unlocked=bool(raw.get("is_unlocked", True)),
            )
        except ValueError as e:
            raise ValidationError(f"domains.{domain}: {e}") from e

    raw_equipment = data.get("equipment") or {}
    if isinstance(raw_equipment, list):
        # flat list: everything kept at home
        raw_equipment = {"home": raw_equipment}
    equipment = EquipmentProfile(
        home=_str_list(raw_equipment.get("home"), "equipment.home"),
        office=_str_list(raw_equipment.get("office"), "equipment.office"),
        outdoor=_str_list(raw_equipment.get("outdoor"), "equipment.outdoor"),
    )

    active_programs = []
    for raw in data.get("active_programs") or []:
        active_programs.append(
            ActiveProgram(
                id=str(_require(raw, "id", "Active program")),
                name=raw.get("name", ""),
                template_id=raw.get("template_id"),
                focus_domains=_str_list(raw.get("focus_domains"), "focus_domains"),
            )
        )

    master_sub_levels: dict[str, dict[str, int]] = {}
    for program_id, levels in (data.get("master_sub_levels") or {}).items():
        if not isinstance(levels, dict):
            raise ValidationError(f"master_sub_levels.{program_id} must be a mapping")
        master_sub_levels[program_id] = {d: int(v) for d, v in levels.items()}

    raw_lifestyle = data.get("lifestyle") or {}
    lifestyle = Lifestyle(
        commute_method=raw_lifestyle.get("commute_method"),
        schedule_days=_str_list(raw_lifestyle.get("schedule_days"), "lifestyle.schedule_days"),
        has_dog=bool(raw_lifestyle.get("has_dog", False)),
    )

    return UserProfile(
        id=str(user_id),
        domains=domains,
        equipment=equipment,
        active_programs=active_programs,
        master_sub_levels=master_sub_levels,
        main_goal=data.get("main_goal"),
        lifestyle=lifestyle,
    )


def user_profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    """Convert UserProfile to a JSON-compatible dict."""
    d: dict[str, Any] = {
        "id": profile.id,
        "domains": {
            name: {
                "current_level": p.current_level,
                "max_level": p.max_level,
                "is_unlocked": p.is_unlocked,
            }
            for name, p in profile.domains.items()
        },
        "equipment": {
            "home": list(profile.equipment.home),
            "office": list(profile.equipment.office),
            "outdoor": list(profile.equipment.outdoor),
        },
        "active_programs": [
            {
                "id": a.id,
                "name": a.name,
                "template_id": a.template_id,
                "focus_domains": list(a.focus_domains),
            }
            for a in profile.active_programs
        ],
    }
    if profile.master_sub_levels:
        d["master_sub_levels"] = {k: dict(v) for k, v in profile.master_sub_levels.items()}
    if profile.main_goal:
        d["main_goal"] = profile.main_goal
    return d


# =============================================================================
# CATALOG
# =============================================================================


def dict_to_program(data: dict[str, Any]) -> Program:
    """
    Convert dict to Program.

    Raises:
        ValidationError: If data is invalid
    """
    return Program(
        id=str(_require(data, "id", "Program")),
        name=data.get("name", ""),
        is_master=bool(data.get("is_master", False)),
        sub_programs=_str_list(data.get("sub_programs"), "sub_programs"),
        focus_domains=_str_list(data.get("focus_domains"), "focus_domains"),
    )


def dict_to_execution_method(data: dict[str, Any]) -> ExecutionMethod:
    """
    Convert dict to ExecutionMethod.

    Both the plural (``locations``, ``gear_ids``, ``equipment_ids``) and the
    legacy single-value (``location``, ``gear_id``, ``equipment_id``) keys
    are accepted.

    Raises:
        ValidationError: If data is invalid
    """
    gear_type = validate_choice(_require(data, "gear_type", "Execution method"), GEAR_TYPES, "gear_type")
    raw_media = data.get("media") or {}
    return ExecutionMethod(
        gear_type=gear_type,
        name=data.get("name", ""),
        locations=tuple(_str_list(data.get("locations"), "locations")),
        location=data.get("location"),
        gear_ids=tuple(_str_list(data.get("gear_ids"), "gear_ids")),
        equipment_ids=tuple(_str_list(data.get("equipment_ids"), "equipment_ids")),
        gear_id=data.get("gear_id"),
        equipment_id=data.get("equipment_id"),
        lifestyle_tags=tuple(_str_list(data.get("lifestyle_tags"), "lifestyle_tags")),
        media=MethodMedia(
            main_video_url=raw_media.get("main_video_url"),
            image_url=raw_media.get("image_url"),
        ),
    )


def execution_method_to_dict(method: ExecutionMethod) -> dict[str, Any]:
    d: dict[str, Any] = {"gear_type": method.gear_type, "name": method.name}
    if method.locations:
        d["locations"] = list(method.locations)
    elif method.location:
        d["location"] = method.location
    if method.all_gear_ids():
        d["gear_ids"] = method.all_gear_ids()
    if method.all_equipment_ids():
        d["equipment_ids"] = method.all_equipment_ids()
    if method.lifestyle_tags:
        d["lifestyle_tags"] = list(method.lifestyle_tags)
    if method.media.main_video_url or method.media.image_url:
        d["media"] = {
            "main_video_url": method.media.main_video_url,
            "image_url": method.media.image_url,
        }
    return d


def dict_to_requirement(data: dict[str, Any]) -> AlternativeEquipmentRequirement:
    kind = validate_choice(_require(data, "kind", "Equipment requirement"), REQUIREMENT_KINDS, "kind")
    priority = int(data.get("priority", 1))
    validate_positive(priority, "priority")
    return AlternativeEquipmentRequirement(
        priority=priority,
        kind=kind,
        equipment_id=data.get("equipment_id"),
        gear_id=data.get("gear_id"),
        urban_asset_name=data.get("urban_asset_name"),
    )


def dict_to_exercise(data: dict[str, Any]) -> Exercise:
    """
    Convert dict to Exercise.

    ``name`` may be a plain string (taken as English) or a language map.
    ``target_programs`` entries are ``{"program_id": ..., "level": ...}``.

    Args:
        data: Dict representation

    Returns:
        Exercise instance

    Raises:
        ValidationError: If data is invalid
    """
    exercise_id = str(_require(data, "id", "Exercise"))
    domain = _require(data, "domain", f"Exercise '{exercise_id}'")

    raw_name = data.get("name") or exercise_id
    name = {"en": raw_name} if isinstance(raw_name, str) else {str(k): str(v) for k, v in raw_name.items()}

    anchors = []
    for raw in data.get("target_programs") or []:
        level = int(_require(raw, "level", f"Exercise '{exercise_id}' target program"))
        validate_positive(level, "target_programs.level")
        anchors.append(ProgramAnchor(program_id=str(_require(raw, "program_id", "Target program")), level=level))

    for key in ("target_reps", "duration_seconds"):
        if data.get(key) is not None:
            validate_non_negative(data[key], key)

    try:
        return Exercise(
            id=exercise_id,
            name=name,
            domain=str(domain),
            program_ids=_str_list(data.get("program_ids"), "program_ids"),
            exercise_type=data.get("type", data.get("exercise_type", "reps")),
            role=data.get("role", "main"),
            execution_methods=[dict_to_execution_method(m) for m in data.get("execution_methods") or []],
            alternative_requirements=[dict_to_requirement(r) for r in data.get("alternative_requirements") or []],
            target_programs=anchors,
            base_movement_id=data.get("base_movement_id"),
            movement_group=data.get("movement_group"),
            required_gym_equipment=data.get("required_gym_equipment"),
            required_user_gear=_str_list(data.get("required_user_gear"), "required_user_gear"),
            target_reps=data.get("target_reps"),
            duration_seconds=data.get("duration_seconds"),
        )
    except ValueError as e:
        raise ValidationError(f"Exercise '{exercise_id}': {e}") from e


# =============================================================================
# PARKS & DEFINITIONS
# =============================================================================


def dict_to_park(data: dict[str, Any]) -> Park:
    """
    Convert dict to Park.

    ``gym_equipment`` entries may be bare equipment ids or
    ``{"equipment_id": ..., "brand_name": ...}`` mappings.

    Raises:
        ValidationError: If data is invalid
    """
    park_id = str(_require(data, "id", "Park"))
    items = []
    for raw in data.get("gym_equipment") or []:
        if isinstance(raw, str):
            items.append(ParkEquipment(equipment_id=raw))
        else:
            items.append(
                ParkEquipment(
                    equipment_id=str(_require(raw, "equipment_id", f"Park '{park_id}' equipment")),
                    brand_name=raw.get("brand_name"),
                )
            )
    return Park(
        id=park_id,
        name=data.get("name", ""),
        authority_id=data.get("authority_id"),
        gym_equipment=items,
    )


def dict_to_gym_equipment(data: dict[str, Any]) -> GymEquipment:
    equipment_id = str(_require(data, "id", "Gym equipment"))
    brands = [
        EquipmentBrand(
            brand_name=str(_require(raw, "brand_name", f"Gym equipment '{equipment_id}' brand")),
            video_url=raw.get("video_url"),
        )
        for raw in data.get("brands") or []
    ]
    return GymEquipment(
        id=equipment_id,
        name=data.get("name", ""),
        available_in_locations=(
            None
            if data.get("available_in_locations") is None
            else _str_list(data["available_in_locations"], "available_in_locations")
        ),
        brands=brands,
    )


def dict_to_gear_definition(data: dict[str, Any]) -> GearDefinition:
    return GearDefinition(
        id=str(_require(data, "id", "Gear definition")),
        name=data.get("name", ""),
        category=data.get("category", ""),
    )


# =============================================================================
# OUTPUTS
# =============================================================================


def planned_exercise_to_dict(planned: PlannedExercise, lang: str = "en") -> dict[str, Any]:
    ex = planned.exercise
    return {
        "exercise_id": ex.id,
        "name": ex.display_name(lang),
        "domain": ex.domain,
        "type": ex.exercise_type,
        "difficulty": planned.difficulty,
        "matches_user_equipment": planned.matches_user_equipment,
        "method": execution_method_to_dict(planned.method) if planned.method else None,
    }


def workout_plan_to_dict(plan: WorkoutPlan, lang: str = "en") -> dict[str, Any]:
    """
    Convert WorkoutPlan to a JSON-compatible dict.

    Args:
        plan: WorkoutPlan to convert
        lang: Language for exercise names

    Returns:
        Dict representation
    """
    return {
        "id": plan.id,
        "name": plan.name,
        "estimated_duration": plan.estimated_duration,
        "focus_domains": list(plan.focus_domains),
        "exercises": [planned_exercise_to_dict(p, lang) for p in plan.exercises],
    }


def session_summary_to_dict(state: SessionState) -> dict[str, Any]:
    """Summary of a finished (or stopped) session."""
    return {
        "elapsed_seconds": state.elapsed_seconds,
        "is_complete": state.is_complete,
        "confirmed": [
            {
                "segment_index": c.segment_index,
                "exercise_index": c.exercise_index,
                "exercise_id": c.exercise_id,
                "value": c.value,
                "unit": c.unit,
            }
            for c in state.confirmed
        ],
    }
