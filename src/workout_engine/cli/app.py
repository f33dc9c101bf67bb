"""Shared Typer app object, shared option types, and store utilities."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.config import LOCATIONS
from ..core.models import Park, UserProfile
from ..io.content_store import ContentStore
from ..io.profile_store import ParkStore, ProfileStore
from ..io.serializers import ValidationError
from . import views
from .logs import setup_logger

# Shared options used across commands
ProfileOption = Annotated[
    Optional[Path],
    typer.Option("--profile", "-p", help="Path to user profile JSON (default: beginner with no gear)"),
]
ParksOption = Annotated[
    Optional[Path],
    typer.Option("--parks", help="Path to parks JSON file"),
]
ParkIdOption = Annotated[
    Optional[str],
    typer.Option("--park", help="Park id within the parks file"),
]
LocationOption = Annotated[
    Optional[str],
    typer.Option("--location", "-l", help="Execution location: home, park, street, office, school, gym, airport or library"),
]
CatalogOption = Annotated[
    Optional[Path],
    typer.Option("--catalog", "-c", help="Catalog directory (default: bundled catalog)"),
]

app = typer.Typer(
    name="workout-engine",
    help="Exercise selection and live workout session engine.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Also write debug logs to this file"),
    ] = None,
) -> None:
    """
    Exercise selection and live workout session engine.
    """
    setup_logger(level="DEBUG" if verbose else "WARNING", log_file=log_file)


def check_location(location: str | None) -> None:
    """Exit with an error unless *location* is None or a known execution location."""
    if location is not None and location not in LOCATIONS:
        views.print_error(f"Location must be one of {', '.join(sorted(LOCATIONS))}")
        raise typer.Exit(1)


def get_content_store(catalog_dir: Path | None) -> ContentStore:
    """Content store over *catalog_dir*, or the bundled catalog with user overrides."""
    if catalog_dir is None:
        return ContentStore()
    if not catalog_dir.is_dir():
        views.print_error(f"Catalog directory not found: {catalog_dir}")
        raise typer.Exit(1)
    return ContentStore(catalog_dir, use_user_overrides=False)


def load_profile(profile_path: Path | None) -> UserProfile:
    """Load the profile at *profile_path*; without a path, a beginner with no gear."""
    if profile_path is None:
        return UserProfile(id="guest")
    store = ProfileStore(profile_path)
    if not store.exists():
        views.print_error(f"Profile not found: {profile_path}")
        raise typer.Exit(1)
    profile = store.load_profile()
    if profile is None:
        views.print_error(f"Invalid profile: {profile_path}")
        raise typer.Exit(1)
    return profile


def load_park(parks_path: Path | None, park_id: str | None) -> Park | None:
    """Look up *park_id* in the parks file, or None when no park is requested."""
    if park_id is None:
        return None
    if parks_path is None:
        views.print_error("--park requires --parks")
        raise typer.Exit(1)
    try:
        park = ParkStore(parks_path).park_by_id(park_id)
    except (json.JSONDecodeError, ValidationError) as e:
        views.print_error(f"Invalid parks file {parks_path}: {e}")
        raise typer.Exit(1)
    if park is None:
        views.print_error(f"Park '{park_id}' not found in {parks_path}")
        raise typer.Exit(1)
    return park
