"""Shared utility functions."""
import math

from taskgraph.models.base import now_ms

__all__ = ["now_ms", "round_half_up"]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2).

    Percentages are rounded this way rather than with Python's banker's rounding.
    """
    return int(math.floor(value + 0.5))
