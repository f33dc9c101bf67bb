"""
Level resolution and intensity banding.

Computes the level a user trains at in each domain (including hidden
per-domain sub-levels of composite programs), the entry level of an
exercise within a program, and the level band a requested intensity
maps to.
"""

from .config import (
    BEGINNER_DISPLAY_LEVEL_MAX,
    DEFAULT_INTENSITY,
    INTENSITY_OFFSETS,
    MIN_LEVEL,
    SAFETY_CEILING_OFFSET,
)
from .models import Domain, Exercise, UserProfile


def domain_level(profile: UserProfile, domain: Domain) -> int:
    """Raw current level for *domain*, defaulting to 1."""
    progress = profile.domains.get(domain)
    if progress is None or not progress.current_level:
        return MIN_LEVEL
    return max(MIN_LEVEL, int(progress.current_level))


def effective_level(profile: UserProfile, domain: Domain) -> int:
    """
    Return the level the user trains *domain* at.

    If the active program has a recorded hidden sub-level for the domain
    (composite programs), that sub-level wins; otherwise the domain's
    current level is used.

    Args:
        profile: User profile
        domain: Training domain id

    Returns:
        Level, always >= 1
    """
    active = profile.active_program
    if active is not None:
        sub_levels = profile.master_sub_levels.get(active.id) or {}
        level = sub_levels.get(domain)
        if level is not None:
            return max(MIN_LEVEL, int(level))
    return domain_level(profile, domain)


def min_entry_level(exercise: Exercise, active_program_id: str | None) -> int:
    """
    Minimum entry level of *exercise* within the active program.

    An exercise anchored to the active program uses the anchor level;
    anything else is treated as level 1.
    """
    if active_program_id:
        for anchor in exercise.target_programs:
            if anchor.program_id == active_program_id:
                return anchor.level
    return MIN_LEVEL


def intensity_band(user_level: int, intensity: str = DEFAULT_INTENSITY) -> tuple[int, int]:
    """
    Map an intensity to an inclusive (low, high) range of entry levels.

        high   → [U, U+1]
        normal → [U-2, U]
        low    → [U-5, U-3]

    Unknown intensities are treated as "normal".
    """
    low_off, high_off = INTENSITY_OFFSETS.get(intensity, INTENSITY_OFFSETS[DEFAULT_INTENSITY])
    return user_level + low_off, user_level + high_off


def safety_ceiling(user_level: int) -> int:
    """Highest entry level ever offered to a user at *user_level*."""
    return user_level + SAFETY_CEILING_OFFSET


def within_safety_ceiling(entry_level: int, user_level: int) -> bool:
    return entry_level <= safety_ceiling(user_level)


def in_band(entry_level: int, band: tuple[int, int]) -> bool:
    low, high = band
    return low <= entry_level <= high


def display_level(profile: UserProfile) -> int:
    """
    Single level to show the user.

    With composite sub-levels recorded for the active program: the lowest
    sub-level while the rounded average is still a beginner level, the
    rounded average above that.  Otherwise the rounded average of all
    domain levels.
    """
    active = profile.active_program
    if active is not None:
        sub_levels = [v for v in (profile.master_sub_levels.get(active.id) or {}).values() if v is not None]
        if sub_levels:
            average = round(sum(sub_levels) / len(sub_levels))
            return min(sub_levels) if average <= BEGINNER_DISPLAY_LEVEL_MAX else average

    levels = [p.current_level or MIN_LEVEL for p in profile.domains.values()]
    if not levels:
        return MIN_LEVEL
    return max(MIN_LEVEL, round(sum(levels) / len(levels)))
