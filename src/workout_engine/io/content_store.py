"""
YAML-backed content store.

Reads the exercise catalog from a directory of YAML files:

    exercises.yaml      {exercises: [...]}
    programs.yaml       {programs: [...]}
    gym_equipment.yaml  {gym_equipment: [...]}
    gear.yaml           {gear: [...]}

The bundled catalog lives in ``src/workout_engine/catalog/``.

User overrides: place files with the same names in
``~/.workout-engine/catalog/``.  Each user entry is deep-merged over the
bundled entry with the same ``id``, so only changed keys need to be listed.
A user entry whose id does not match any bundled entry is added.

A malformed entry is skipped with a warning; the rest of the file loads.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml
from loguru import logger

from ..core.config import DefinitionCache
from ..core.models import Domain, Exercise, GearDefinition, GymEquipment, Program
from .serializers import (
    ValidationError,
    dict_to_exercise,
    dict_to_gear_definition,
    dict_to_gym_equipment,
    dict_to_program,
)

T = TypeVar("T")

CATALOG_FILES: dict[str, str] = {
    "exercises": "exercises.yaml",
    "programs": "programs.yaml",
    "gym_equipment": "gym_equipment.yaml",
    "gear": "gear.yaml",
}


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; a missing file yields {}."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def merge_entries(bundled: list[dict], user: list[dict]) -> list[dict]:
    """
    Merge user catalog entries over bundled ones by ``id``.

    Bundled order is kept; user-only entries are appended in file order.
    """
    merged: dict[Any, dict] = {}
    anonymous: list[dict] = []
    for entry in bundled:
        if isinstance(entry, dict) and "id" in entry:
            merged[entry["id"]] = entry
        else:
            anonymous.append(entry)
    for entry in user:
        if isinstance(entry, dict) and entry.get("id") in merged:
            merged[entry["id"]] = _deep_merge(merged[entry["id"]], entry)
        elif isinstance(entry, dict) and "id" in entry:
            merged[entry["id"]] = entry
        else:
            anonymous.append(entry)
    return [*merged.values(), *anonymous]


def get_bundled_catalog_dir() -> Path:
    """Return the path to the bundled catalog/ data directory."""
    # content_store.py lives at src/workout_engine/io/content_store.py
    return Path(__file__).parent.parent / "catalog"


def get_user_catalog_dir() -> Path | None:
    """Return ~/.workout-engine/catalog/ if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".workout-engine" / "catalog"
    return p if p.is_dir() else None


class ContentStore:
    """
    Read-only catalog of programs, exercises and equipment definitions.

    Files are parsed lazily on first access and kept for the lifetime of
    the store; call ``reload()`` to pick up edits.
    """

    def __init__(
        self,
        catalog_dir: str | Path | None = None,
        user_dir: str | Path | None = None,
        use_user_overrides: bool = True,
    ):
        """
        Initialize the store.

        Args:
            catalog_dir: Directory with the base catalog (default: bundled)
            user_dir: Override directory (default: ~/.workout-engine/catalog/)
            use_user_overrides: Set False to ignore the override directory
        """
        self.catalog_dir = Path(catalog_dir) if catalog_dir is not None else get_bundled_catalog_dir()
        if not use_user_overrides:
            self.user_dir: Path | None = None
        elif user_dir is not None:
            self.user_dir = Path(user_dir)
        else:
            self.user_dir = get_user_catalog_dir()
        self._cache: dict[str, list] = {}

    def reload(self) -> None:
        self._cache.clear()

    def _raw_entries(self, section: str) -> list[dict]:
        filename = CATALOG_FILES[section]
        bundled = _load_yaml_file(self.catalog_dir / filename).get(section) or []
        user: list[dict] = []
        if self.user_dir is not None:
            user = _load_yaml_file(self.user_dir / filename).get(section) or []
        return merge_entries(list(bundled), list(user))

    def _section(self, section: str, convert: Callable[[dict], T]) -> list[T]:
        if section in self._cache:
            return self._cache[section]
        items: list[T] = []
        for i, raw in enumerate(self._raw_entries(section)):
            try:
                items.append(convert(raw))
            except (ValidationError, ValueError, TypeError, AttributeError) as exc:
                label = raw.get("id", f"#{i}") if isinstance(raw, dict) else f"#{i}"
                warnings.warn(
                    f"workout-engine: skipping {section} entry '{label}' — {exc}",
                    stacklevel=2,
                )
        logger.debug(f"Loaded {len(items)} {section} from {self.catalog_dir}")
        self._cache[section] = items
        return items

    # ------------------------------------------------------------------
    # Content-store interface
    # ------------------------------------------------------------------

    def all_programs(self) -> list[Program]:
        return list(self._section("programs", dict_to_program))

    def program_by_id(self, program_id: str) -> Program | None:
        for program in self._section("programs", dict_to_program):
            if program.id == program_id:
                return program
        return None

    def all_exercises(self) -> list[Exercise]:
        return list(self._section("exercises", dict_to_exercise))

    def exercise_by_id(self, exercise_id: str) -> Exercise | None:
        for ex in self._section("exercises", dict_to_exercise):
            if ex.id == exercise_id:
                return ex
        return None

    def exercises_by_domain(self, domain: Domain) -> list[Exercise]:
        """Exercises whose domain (or program membership) includes *domain*."""
        return [ex for ex in self._section("exercises", dict_to_exercise) if ex.belongs_to(domain)]

    def gear_definitions(self) -> list[GearDefinition]:
        return list(self._section("gear", dict_to_gear_definition))

    def gym_equipment_definitions(self) -> list[GymEquipment]:
        return list(self._section("gym_equipment", dict_to_gym_equipment))

    def gym_equipment_cache(self, ttl_seconds: float | None = None) -> DefinitionCache[GymEquipment]:
        """A DefinitionCache over this store's gym-equipment definitions."""
        return DefinitionCache(self.gym_equipment_definitions, ttl_seconds=ttl_seconds, name="gym equipment")
