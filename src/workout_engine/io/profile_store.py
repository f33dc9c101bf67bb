"""
JSON-based storage for user profiles and parks.

Handles reading and writing the documents the selection core consumes.
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from ..core.models import Park, UserProfile
from .serializers import (
    ValidationError,
    dict_to_park,
    dict_to_user_profile,
    user_profile_to_dict,
)


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class ProfileStore:
    """
    Manages one user profile stored as a JSON document.
    """

    def __init__(self, profile_path: str | Path):
        """
        Initialize the profile store.

        Args:
            profile_path: Path to the profile JSON file
        """
        self.profile_path = Path(profile_path)

    def exists(self) -> bool:
        """Check if the profile file exists."""
        return self.profile_path.exists()

    def load_profile(self) -> UserProfile | None:
        """
        Load the user profile.

        Returns:
            UserProfile if the file exists and is valid, None otherwise
        """
        if not self.profile_path.exists():
            return None
        try:
            return dict_to_user_profile(_read_json(self.profile_path))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning(f"Invalid profile {self.profile_path}: {exc}")
            return None

    def save_profile(self, profile: UserProfile) -> None:
        """
        Save the user profile, creating parent directories if needed.

        Args:
            profile: UserProfile to save
        """
        self.profile_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.profile_path, "w", encoding="utf-8") as f:
            json.dump(user_profile_to_dict(profile), f, indent=2)


class ParkStore:
    """
    Read-only park documents from a JSON file.

    The file holds either a list of parks or ``{"parks": [...]}``.
    Invalid park entries are logged and skipped.
    """

    def __init__(self, parks_path: str | Path):
        self.parks_path = Path(parks_path)
        self._parks: list[Park] | None = None

    def load_parks(self) -> list[Park]:
        if self._parks is not None:
            return self._parks
        if not self.parks_path.exists():
            self._parks = []
            return self._parks

        data = _read_json(self.parks_path)
        raw_parks = data.get("parks", []) if isinstance(data, dict) else data
        if not isinstance(raw_parks, list):
            raise ValidationError(f"{self.parks_path}: expected a list of parks")

        parks = []
        for raw in raw_parks:
            try:
                parks.append(dict_to_park(raw))
            except ValidationError as exc:
                logger.warning(f"Skipping park in {self.parks_path}: {exc}")
        self._parks = parks
        return parks

    def park_by_id(self, park_id: str) -> Park | None:
        for park in self.load_parks():
            if park.id == park_id:
                return park
        return None

    def parks_by_authority(self, authority_id: str) -> list[Park]:
        return [p for p in self.load_parks() if p.authority_id == authority_id]
