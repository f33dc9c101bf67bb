"""
CLI view formatters using Rich for pretty console output.

Handles table formatting of plans, method selections and session logs.
"""

from rich.console import Console
from rich.table import Table

from ..core.models import ExecutionMethod, Exercise, WorkoutPlan
from ..core.replacement import ReplacementOption
from ..core.session.machine import TransitionEvent
from ..core.session.state import SessionState

console = Console()


def _fmt_method(method: ExecutionMethod | None) -> str:
    if method is None:
        return "[dim]-[/dim]"
    gear = ", ".join([*method.all_equipment_ids(), *method.all_gear_ids()])
    label = method.name or method.gear_type
    return f"{label} ({method.gear_type}{': ' + gear if gear else ''})"


def format_plan_table(plan: WorkoutPlan, lang: str = "en") -> Table:
    """
    Create a Rich table displaying a workout plan.

    Args:
        plan: Plan to display
        lang: Language for exercise names

    Returns:
        Rich Table object
    """
    table = Table(title=f"{plan.name} · {plan.estimated_duration} min")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Exercise", style="cyan")
    table.add_column("Domain", style="magenta")
    table.add_column("Type")
    table.add_column("Level", justify="right", style="bold")
    table.add_column("Method", style="green")
    table.add_column("Own gear", justify="center")

    for i, planned in enumerate(plan.exercises, 1):
        ex = planned.exercise
        table.add_row(
            str(i),
            ex.display_name(lang),
            ex.domain,
            ex.exercise_type,
            str(planned.difficulty),
            _fmt_method(planned.method),
            "✓" if planned.matches_user_equipment else "",
        )

    return table


def print_plan(plan: WorkoutPlan, lang: str = "en") -> None:
    console.print(format_plan_table(plan, lang))
    console.print(f"[dim]Plan {plan.id} · focus: {', '.join(plan.focus_domains)}[/dim]")


def print_method(exercise: Exercise, location: str, method: ExecutionMethod | None, performable: bool) -> None:
    """Print the method chosen for one exercise."""
    console.print(f"[bold]{exercise.display_name()}[/bold] at [cyan]{location}[/cyan]")
    if method is None:
        console.print("  [yellow]No execution method for this location[/yellow]")
    else:
        console.print(f"  Method: {_fmt_method(method)}")
        if method.media.main_video_url:
            console.print(f"  Video:  {method.media.main_video_url}")
    console.print(f"  Performable: {'[green]yes[/green]' if performable else '[red]no[/red]'}")


def format_replacements_table(title: str, options: list[ReplacementOption]) -> Table:
    table = Table(title=title)
    table.add_column("Exercise", style="cyan")
    table.add_column("Level", justify="right")
    table.add_column("vs current")
    table.add_column("Method", style="green")
    for option in options:
        table.add_row(
            option.exercise.display_name(),
            str(option.level),
            option.level_comparison,
            _fmt_method(option.method),
        )
    return table


def format_event(event: TransitionEvent, names: dict[tuple[int, int], str]) -> str:
    """One line of the session event log."""
    where = names.get(event.to_position, "")
    state = event.to_state
    if event.from_state != event.to_state:
        state = f"{event.from_state} → {event.to_state}"
    return f"[dim]{event.elapsed_seconds:>4}s[/dim]  [bold]{event.event:<18}[/bold] {state}  [cyan]{where}[/cyan]"


def print_session_summary(state: SessionState) -> None:
    table = Table(title="Session Summary")
    table.add_column("Exercise", style="cyan")
    table.add_column("Value", justify="right", style="bold")
    table.add_column("Unit")
    for confirmed in state.confirmed:
        table.add_row(confirmed.exercise_id, str(confirmed.value), confirmed.unit)
    console.print(table)
    console.print(f"Elapsed: {state.elapsed_seconds}s · complete: {state.is_complete}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
