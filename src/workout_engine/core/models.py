"""
Data models for workout-engine.

All core dataclasses representing user profiles, programs, the exercise
catalog, parks, generated workout plans, and the canonical segment schema
consumed by the live session.
"""

from dataclasses import dataclass, field
from typing import Literal

Domain = str
Location = str
Intensity = Literal["high", "normal", "low"]
GearType = Literal["fixed_equipment", "user_gear", "improvised"]
RequirementKind = Literal["gym_equipment", "urban_asset", "user_gear"]
ExerciseType = Literal["reps", "time"]
ExerciseRole = Literal["main", "warmup", "cooldown"]
SegmentKind = Literal["main", "warmup", "cooldown", "travel"]
TargetType = Literal["reps", "time", "distance"]

GEAR_TYPES = ("fixed_equipment", "user_gear", "improvised")
REQUIREMENT_KINDS = ("gym_equipment", "urban_asset", "user_gear")
INTENSITIES = ("high", "normal", "low")


# =============================================================================
# USER PROFILE
# =============================================================================


@dataclass
class DomainProgress:
    """Technical progress in one training domain."""

    current_level: int = 1
    max_level: int = 10
    is_unlocked: bool = True

    def __post_init__(self) -> None:
        if self.max_level < 1:
            raise ValueError("max_level must be at least 1")


@dataclass
class EquipmentProfile:
    """
    Gear the user owns, partitioned by where it is kept.

    Ownership checks ignore the partition: gear kept at home is still
    "owned" when the user trains in a park.
    """

    home: list[str] = field(default_factory=list)
    office: list[str] = field(default_factory=list)
    outdoor: list[str] = field(default_factory=list)

    def all_items(self) -> list[str]:
        return [*self.home, *self.office, *self.outdoor]

    def owns(self, item_id: str) -> bool:
        return item_id in self.all_items()


@dataclass
class Lifestyle:
    """Lifestyle answers used to infer lifestyle tags."""

    commute_method: str | None = None  # "bus" | "car" | "bike" | "walk"
    schedule_days: list[str] = field(default_factory=list)
    has_dog: bool = False


@dataclass
class ActiveProgram:
    """A program the user is currently enrolled in."""

    id: str
    name: str = ""
    template_id: str | None = None
    focus_domains: list[Domain] = field(default_factory=list)

    @property
    def catalog_id(self) -> str:
        """Id used to match exercise level anchors (template first)."""
        return self.template_id or self.id


@dataclass
class UserProfile:
    """
    User profile as seen by the selection core (read-only).

    ``master_sub_levels`` holds hidden per-domain levels for composite
    programs: ``{program_id: {domain: level}}``.
    """

    id: str
    domains: dict[Domain, DomainProgress] = field(default_factory=dict)
    equipment: EquipmentProfile = field(default_factory=EquipmentProfile)
    active_programs: list[ActiveProgram] = field(default_factory=list)
    master_sub_levels: dict[str, dict[Domain, int]] = field(default_factory=dict)
    main_goal: str | None = None
    lifestyle: Lifestyle = field(default_factory=Lifestyle)

    @property
    def active_program(self) -> ActiveProgram | None:
        """The primary active program, or None."""
        return self.active_programs[0] if self.active_programs else None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("UserProfile.id must be non-empty")
        for program_id, levels in self.master_sub_levels.items():
            if not isinstance(levels, dict):
                raise ValueError(
                    f"master_sub_levels[{program_id!r}] must be a dict, got {type(levels)}"
                )


# =============================================================================
# PROGRAMS
# =============================================================================


@dataclass
class Program:
    """Program document from the content store."""

    id: str
    name: str = ""
    is_master: bool = False
    sub_programs: list[Domain] = field(default_factory=list)
    focus_domains: list[Domain] = field(default_factory=list)


# =============================================================================
# EXERCISE CATALOG
# =============================================================================


@dataclass(frozen=True)
class MethodMedia:
    main_video_url: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class ExecutionMethod:
    """
    One concrete way to perform an exercise.

    ``location`` / ``gear_id`` / ``equipment_id`` are legacy single-value
    fields; the plural fields win when both are set.
    """

    gear_type: GearType
    name: str = ""
    locations: tuple[Location, ...] = ()
    location: Location | None = None
    gear_ids: tuple[str, ...] = ()
    equipment_ids: tuple[str, ...] = ()
    gear_id: str | None = None
    equipment_id: str | None = None
    lifestyle_tags: tuple[str, ...] = ()
    media: MethodMedia = field(default_factory=MethodMedia)

    def __post_init__(self) -> None:
        if self.gear_type not in GEAR_TYPES:
            raise ValueError(f"Invalid gear_type: {self.gear_type!r}")

    def supports(self, location: Location) -> bool:
        """True if this method can be performed at *location*."""
        if self.locations:
            return location in self.locations
        return self.location == location

    def all_gear_ids(self) -> list[str]:
        if self.gear_ids:
            return list(self.gear_ids)
        return [self.gear_id] if self.gear_id else []

    def all_equipment_ids(self) -> list[str]:
        if self.equipment_ids:
            return list(self.equipment_ids)
        return [self.equipment_id] if self.equipment_id else []


@dataclass(frozen=True)
class AlternativeEquipmentRequirement:
    """One way of satisfying an exercise's gear needs (priority 1 = highest)."""

    priority: int
    kind: RequirementKind
    equipment_id: str | None = None
    gear_id: str | None = None
    urban_asset_name: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in REQUIREMENT_KINDS:
            raise ValueError(f"Invalid requirement kind: {self.kind!r}")
        if self.priority < 1:
            raise ValueError("priority must be at least 1")


@dataclass(frozen=True)
class ProgramAnchor:
    """Minimum entry level of an exercise within one program."""

    program_id: str
    level: int


@dataclass
class Exercise:
    """
    Catalog exercise.

    ``name`` is localized: ``{"en": "Push-Up", "he": "..."}``.
    ``required_gym_equipment`` / ``required_user_gear`` are legacy fields
    honoured only when no alternative requirements are declared.
    """

    id: str
    name: dict[str, str]
    domain: Domain
    program_ids: list[Domain] = field(default_factory=list)
    exercise_type: ExerciseType = "reps"
    role: ExerciseRole = "main"
    execution_methods: list[ExecutionMethod] = field(default_factory=list)
    alternative_requirements: list[AlternativeEquipmentRequirement] = field(default_factory=list)
    target_programs: list[ProgramAnchor] = field(default_factory=list)
    base_movement_id: str | None = None
    movement_group: str | None = None
    required_gym_equipment: str | None = None
    required_user_gear: list[str] = field(default_factory=list)
    target_reps: int | None = None
    duration_seconds: int | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Exercise.id must be non-empty")
        if self.exercise_type not in ("reps", "time"):
            raise ValueError(f"Invalid exercise_type: {self.exercise_type!r}")
        if self.role not in ("main", "warmup", "cooldown"):
            raise ValueError(f"Invalid role: {self.role!r}")

    def display_name(self, lang: str = "en") -> str:
        """Localized name, falling back to any available language, then the id."""
        if lang in self.name:
            return self.name[lang]
        for value in self.name.values():
            return value
        return self.id

    def belongs_to(self, domain: Domain) -> bool:
        return self.domain == domain or domain in self.program_ids


# =============================================================================
# PARKS & EQUIPMENT DEFINITIONS
# =============================================================================


@dataclass(frozen=True)
class ParkEquipment:
    equipment_id: str
    brand_name: str | None = None


@dataclass
class Park:
    """Outdoor training location with its fixed gym equipment."""

    id: str
    name: str = ""
    authority_id: str | None = None
    gym_equipment: list[ParkEquipment] = field(default_factory=list)

    def has_equipment(self, equipment_id: str) -> bool:
        return any(eq.equipment_id == equipment_id for eq in self.gym_equipment)

    def find_equipment(self, equipment_id: str) -> ParkEquipment | None:
        for eq in self.gym_equipment:
            if eq.equipment_id == equipment_id:
                return eq
        return None


@dataclass(frozen=True)
class EquipmentBrand:
    brand_name: str
    video_url: str | None = None


@dataclass
class GymEquipment:
    """
    Fixed gym-equipment definition.

    ``None`` for ``available_in_locations`` means "available everywhere";
    an empty list means "available nowhere".
    """

    id: str
    name: str = ""
    available_in_locations: list[str] | None = None
    brands: list[EquipmentBrand] = field(default_factory=list)

    def brand(self, brand_name: str | None) -> EquipmentBrand | None:
        for b in self.brands:
            if b.brand_name == brand_name:
                return b
        return None


@dataclass
class GearDefinition:
    id: str
    name: str = ""
    category: str = ""


# =============================================================================
# WORKOUT PLAN
# =============================================================================


@dataclass(frozen=True)
class PlannedExercise:
    """An exercise chosen for a plan, with the method it will be performed with."""

    exercise: Exercise
    method: ExecutionMethod | None = None
    difficulty: int = 1
    matches_user_equipment: bool = False

    @property
    def domain(self) -> Domain:
        return self.exercise.domain


@dataclass(frozen=True)
class WorkoutPlan:
    """
    A generated, immutable workout plan.

    A running session tracks only its position within the plan.
    """

    id: str
    name: str
    exercises: tuple[PlannedExercise, ...]
    estimated_duration: int  # minutes
    focus_domains: tuple[Domain, ...]

    @property
    def exercise_ids(self) -> list[str]:
        return [p.exercise.id for p in self.exercises]


# =============================================================================
# SESSION SEGMENTS (canonical schema consumed by the live session)
# =============================================================================


@dataclass(frozen=True)
class SessionExercise:
    exercise_id: str
    name: str
    exercise_type: ExerciseType | None = None
    role: ExerciseRole = "main"
    follow_along: bool = False
    target_reps: int | None = None
    duration_seconds: int | None = None
    method: ExecutionMethod | None = None


@dataclass(frozen=True)
class WorkoutSegment:
    """
    A contiguous block of a session.

    ``rest_between_exercises`` of None means "use the default for this kind
    of segment".
    """

    id: str
    title: str = ""
    kind: SegmentKind = "main"
    exercises: tuple[SessionExercise, ...] = ()
    rest_between_exercises: int | None = None
    target_type: TargetType | None = None
    target_value: int | None = None

    def __post_init__(self) -> None:
        if self.rest_between_exercises is not None and self.rest_between_exercises < 0:
            raise ValueError("rest_between_exercises must be non-negative")
