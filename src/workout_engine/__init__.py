"""
workout-engine: exercise selection and live session orchestration.

Picks feasible, level-appropriate exercises with a concrete execution method
and drives the state of a live training session.
"""

__version__ = "0.3.0"
