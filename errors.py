from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors raised while building a study plan."""


class InvalidInputError(PlannerError, ValueError):
    """Timeline or subject data reached the scheduler in a shape it cannot plan."""
