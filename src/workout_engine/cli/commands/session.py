"""Session commands: simulate a live session on a virtual clock."""

import json
from typing import Annotated, Optional

import typer

from ...core.models import PlannedExercise
from ...core.planner import build_session_segments, generate_workout_plan, to_session_exercise
from ...core.session import (
    ACTIVE,
    PREPARING,
    REPETITION_PICKER,
    LiveSessionStateMachine,
    ManualScheduler,
    TransitionEvent,
)
from ...core.session.timers import CueKind
from ...io.serializers import session_summary_to_dict
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

# Upper bound on simulated seconds, in case a session never settles
MAX_SIMULATED_SECONDS = 6 * 3600


def _follow_along(store, role: str) -> list:
    return [
        to_session_exercise(PlannedExercise(exercise=ex, method=None))
        for ex in store.all_exercises()
        if ex.role == role
    ]


@app.command()
def simulate(
    profile_path: ProfileOption = None,
    parks_path: ParksOption = None,
    park_id: ParkIdOption = None,
    location: LocationOption = None,
    intensity: Annotated[
        str,
        typer.Option("--intensity", "-i", help="high, normal or low"),
    ] = "normal",
    rest: Annotated[
        Optional[int],
        typer.Option("--rest", help="Rest between exercises in seconds (default 10)"),
    ] = None,
    work_seconds: Annotated[
        int,
        typer.Option("--work", help="Simulated seconds spent on each exercise"),
    ] = 20,
    picker_seconds: Annotated[
        int,
        typer.Option("--picker", help="Simulated seconds before confirming the picker"),
    ] = 3,
    warmup: Annotated[
        bool,
        typer.Option("--warmup/--no-warmup", help="Add warm-up and cool-down segments"),
    ] = True,
    catalog_dir: CatalogOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output the session summary as JSON"),
    ] = False,
) -> None:
    """
    Run a generated plan through the live session engine on a virtual clock.

    Each exercise is "performed" for --work seconds, then the picker value
    is confirmed after --picker seconds.  Prints the transition log.
    """
    if rest is not None and rest < 0:
        views.print_error("Rest must be non-negative")
        raise typer.Exit(1)
    if work_seconds < 0 or picker_seconds < 0:
        views.print_error("--work and --picker must be non-negative")
        raise typer.Exit(1)
    check_location(location)

    store = get_content_store(catalog_dir)
    profile = load_profile(profile_path)
    park = load_park(parks_path, park_id)

    plan = generate_workout_plan(
        profile, store, park=park, intensity=intensity, location=location,
        gym_equipment=store.gym_equipment_cache(),
    )
    if plan is None or not plan.exercises:
        views.print_error("No exercises to simulate")
        raise typer.Exit(1)

    segments = build_session_segments(
        plan,
        rest_seconds=rest,
        warmup=_follow_along(store, "warmup") if warmup else (),
        cooldown=_follow_along(store, "cooldown") if warmup else (),
    )
    names = {
        (si, ei): ex.name
        for si, segment in enumerate(segments)
        for ei, ex in enumerate(segment.exercises)
    }

    log: list[str] = []
    finished: list = []

    def on_transition(event: TransitionEvent) -> None:
        log.append(views.format_event(event, names))

    def on_cue(cue: CueKind) -> None:
        log.append(f"        [yellow]♪ {cue.value} cue[/yellow]")

    scheduler = ManualScheduler()
    machine = LiveSessionStateMachine(
        segments,
        scheduler,
        on_complete=finished.append,
        on_transition=on_transition,
        cue_sink=on_cue,
    )
    machine.start()

    while not finished and scheduler.time() < MAX_SIMULATED_SECONDS:
        state = machine.state
        if state.state == PREPARING:
            scheduler.advance(1)
        elif state.state == ACTIVE:
            scheduler.advance(work_seconds)
            machine.complete_exercise()
            scheduler.run_pending()
        elif state.state == REPETITION_PICKER:
            scheduler.advance(picker_seconds)
            machine.confirm_repetition(machine.state.pending_value or 0)
            scheduler.run_pending()
        else:
            scheduler.advance(1)

    if not finished:
        views.print_error("Simulation did not finish")
        raise typer.Exit(1)

    summary = finished[0]
    if json_out:
        print(json.dumps(session_summary_to_dict(summary), indent=2))
        return

    total = sum(len(s.exercises) for s in segments)
    views.print_info(f"{plan.name}: {total} exercises in {len(segments)} segments")
    for line in log:
        views.console.print(line)
    views.console.print()
    views.print_session_summary(summary)
    views.print_success(f"Session complete in {summary.elapsed_seconds // 60}:{summary.elapsed_seconds % 60:02d}")
