"""
CLI entry point using Typer.

Provides commands for exercise selection and session simulation:
- generate: Generate a workout plan for a profile (and park)
- methods: Show the execution method chosen for one exercise
- simulate: Run a generated plan through the live session engine
"""

from .app import app
from .commands import planning, session  # noqa: F401  (registers commands)

if __name__ == "__main__":
    app()
