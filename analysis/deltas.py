"""Delta calculations for the Analysis Engine.

This module computes deterministic first-to-last changes across a value
series. Deltas are computed on-demand and are never persisted.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from .categories import TrendDirection, TrendSignificance
from .dto import TrendChange

# Changes smaller than this many percent are reported as stable.
STABLE_DEAD_ZONE_PERCENT: Final[float] = 0.1


def percent_change(first: float, last: float) -> float:
    """Return the percent change from `first` to `last`.

    A series starting at 0 reports 100 when it ends positive and 0 otherwise;
    other series divide by `|first|` so a negative base keeps the sign of the
    absolute change.
    """

    if first == 0:
        return 100.0 if last > 0 else 0.0
    return ((last - first) / abs(first)) * 100


def delta(first: float, last: float) -> TrendChange:
    """Compute absolute change, percent change and direction between two values.

    Args:
        first: Oldest value.
        last: Newest value.

    Returns:
        TrendChange; the direction is stable when `|percent|` is below 0.1.
    """

    percent = percent_change(first, last)
    if abs(percent) < STABLE_DEAD_ZONE_PERCENT:
        direction = TrendDirection.stable
    elif percent > 0:
        direction = TrendDirection.up
    else:
        direction = TrendDirection.down
    return TrendChange(absolute=last - first, percent=percent, direction=direction)


def series_delta(values: Sequence[float]) -> TrendChange:
    """Compute the change from the first to the last value of a series.

    An empty series is treated as unchanged at 0.
    """

    if not values:
        return delta(0.0, 0.0)
    return delta(values[0], values[-1])


def significance(percent: float, threshold_percent: float) -> TrendSignificance:
    """Bucket a percent change against a threshold.

    `high` at twice the threshold or more, `medium` at the threshold or more,
    `low` otherwise.
    """

    magnitude = abs(percent)
    if magnitude >= threshold_percent * 2:
        return TrendSignificance.high
    if magnitude >= threshold_percent:
        return TrendSignificance.medium
    return TrendSignificance.low
