"""Exceptions raised by the polygon engine and the planner."""

from __future__ import annotations


class InvariantViolation(RuntimeError):
    """A structural invariant of a polygon set does not hold.

    Raised by the optional invariant checker and by polygon splits that
    produce a non-convex half. The message names the broken invariant.
    """
