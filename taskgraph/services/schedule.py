"""Projected completion dates and effort variance.

Timestamps are epoch milliseconds. A projection of None means "unknown":
there is no observed rate to extrapolate from, and callers must not read it
as a date.
"""
from typing import Optional

from taskgraph.constants import HOURS_PER_WORKDAY, MS_PER_DAY, PROGRESS_MAX
from taskgraph.utils import round_half_up


def project_completion(
    progress: int,
    estimated_hours: Optional[float],
    actual_hours: Optional[float],
    start_at: Optional[int],
    now: int,
) -> Optional[int]:
    """Extrapolate a finish time from effort spent per percent of progress.

    Remaining effort is converted to days at 8 hours/day and added as calendar
    days to ``now``; weekends and holidays are not skipped.
    """
    if progress >= PROGRESS_MAX:
        return now
    if progress <= 0 or not estimated_hours or start_at is None:
        return None
    actual = actual_hours or 0.0
    if actual <= 0:
        return None

    effort_per_percent = actual / progress
    remaining_effort = effort_per_percent * (PROGRESS_MAX - progress)
    remaining_days = remaining_effort / HOURS_PER_WORKDAY
    return now + int(remaining_days * MS_PER_DAY)


def effort_variance(
    estimated_hours: Optional[float], actual_hours: Optional[float]
) -> int:
    """Percent over (+) or under (-) the estimate.

    Defined only for a positive estimate; 0 is returned by convention
    otherwise and does not mean "on budget".
    """
    if not estimated_hours or estimated_hours <= 0:
        return 0
    actual = actual_hours or 0.0
    return round_half_up((actual - estimated_hours) / estimated_hours * 100)
