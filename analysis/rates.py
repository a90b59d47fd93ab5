"""Rate and share calculations for the Analysis Engine.

Hourly rates always divide by a specific run's (or period's) real-time
duration; shares are percentages rounded half-up to 2 decimals.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from .dto import Run

SECONDS_PER_HOUR = 3600.0


def per_hour(value: float, real_time_seconds: float) -> float | None:
    """Normalize a value to a rate per 3600 seconds.

    Args:
        value: Value accumulated over the duration.
        real_time_seconds: Duration in seconds.

    Returns:
        Value per hour, or None when the duration is not positive.
    """

    if real_time_seconds <= 0:
        return None
    return (value / float(real_time_seconds)) * SECONDS_PER_HOUR


def calculate_percentage(value: float, total: float) -> float:
    """Return `value` as a percentage (0-100) of `total`, rounded to 2 decimals.

    Returns 0 when either the value or the total is 0.
    """

    if total == 0 or value == 0:
        return 0.0
    return math.floor((value / total) * 10000 + 0.5) / 100


def total_duration_hours(runs: Iterable[Run]) -> float:
    """Return the combined real-time duration of runs in hours."""

    return sum(run.real_time for run in runs) / SECONDS_PER_HOUR


def format_hours_subheader(hours: float) -> str:
    """Format a duration in hours for a column subheader (`11.5 hours`, `1 hour`)."""

    rounded = math.floor(hours * 10 + 0.5) / 10
    text = f"{rounded:.1f}".removesuffix(".0")
    unit = "hour" if rounded == 1 else "hours"
    return f"{text} {unit}"
