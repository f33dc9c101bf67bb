"""Planning commands: generate and methods."""

import json
from typing import Annotated, Optional

import typer

from ...core.equipment import can_perform_exercise
from ...core.levels import min_entry_level
from ...core.methods import select_execution_method_with_brand
from ...core.models import INTENSITIES
from ...core.planner import generate_workout_plan
from ...core.replacement import alternative_exercises, exercise_variations
from ...io.serializers import execution_method_to_dict, workout_plan_to_dict
from .. import views
from ..app import (
    CatalogOption,
    LocationOption,
    ParkIdOption,
    ParksOption,
    ProfileOption,
    app,
    check_location,
    get_content_store,
    load_park,
    load_profile,
)


def _check_intensity(intensity: str) -> None:
    if intensity not in INTENSITIES:
        views.print_error(f"Intensity must be one of {', '.join(INTENSITIES)}")
        raise typer.Exit(1)


@app.command()
def generate(
    profile_path: ProfileOption = None,
    parks_path: ParksOption = None,
    park_id: ParkIdOption = None,
    location: LocationOption = None,
    intensity: Annotated[
        str,
        typer.Option("--intensity", "-i", help="high, normal or low"),
    ] = "normal",
    duration: Annotated[
        Optional[int],
        typer.Option("--duration", "-d", help="Target duration in minutes (default 45)"),
    ] = None,
    catalog_dir: CatalogOption = None,
    lang: Annotated[
        str,
        typer.Option("--lang", help="Language for exercise names"),
    ] = "en",
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Generate a workout plan for a user profile.
    """
    _check_intensity(intensity)
    check_location(location)
    if duration is not None and duration <= 0:
        views.print_error("Duration must be positive")
        raise typer.Exit(1)

    store = get_content_store(catalog_dir)
    profile = load_profile(profile_path)
    park = load_park(parks_path, park_id)

    plan = generate_workout_plan(
        profile,
        store,
        target_duration=duration,
        park=park,
        intensity=intensity,
        location=location,
        gym_equipment=store.gym_equipment_cache(),
    )
    if plan is None:
        views.print_error("Could not generate a plan")
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(workout_plan_to_dict(plan, lang), indent=2, ensure_ascii=False))
        return

    views.print_plan(plan, lang)
    if not plan.exercises:
        views.print_warning("The catalog has no exercises for these domains.")


@app.command()
def methods(
    exercise_id: Annotated[str, typer.Argument(help="Exercise id from the catalog")],
    profile_path: ProfileOption = None,
    parks_path: ParksOption = None,
    park_id: ParkIdOption = None,
    location: LocationOption = None,
    catalog_dir: CatalogOption = None,
    replacements: Annotated[
        bool,
        typer.Option("--replacements", "-r", help="Also list variations and alternatives"),
    ] = False,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show how an exercise would be performed at a location.
    """
    check_location(location)
    store = get_content_store(catalog_dir)
    exercise = store.exercise_by_id(exercise_id)
    if exercise is None:
        views.print_error(f"Unknown exercise: {exercise_id}")
        raise typer.Exit(1)

    profile = load_profile(profile_path)
    park = load_park(parks_path, park_id)
    location = location or ("park" if park is not None else "street")
    gym_equipment = store.gym_equipment_cache()

    method = select_execution_method_with_brand(exercise, location, park, profile, gym_equipment)
    performable = can_perform_exercise(exercise, park, profile, location, gym_equipment)

    variations, alternatives = [], []
    if replacements:
        active = profile.active_program
        program_id = active.catalog_id if active is not None else None
        current_level = min_entry_level(exercise, program_id)
        catalog = store.all_exercises()
        variations = exercise_variations(
            exercise, catalog, current_level, location, park, profile, program_id, gym_equipment
        )
        alternatives = alternative_exercises(
            exercise, catalog, current_level, location, park, profile, program_id, gym_equipment
        )

    if json_out:
        out = {
            "exercise_id": exercise.id,
            "location": location,
            "method": execution_method_to_dict(method) if method else None,
            "performable": performable,
        }
        if replacements:
            out["variations"] = [o.exercise.id for o in variations]
            out["alternatives"] = [o.exercise.id for o in alternatives]
        print(json.dumps(out, indent=2))
        return

    views.print_method(exercise, location, method, performable)
    if replacements:
        views.console.print(views.format_replacements_table("Variations", variations))
        views.console.print(views.format_replacements_table("Alternatives", alternatives))
