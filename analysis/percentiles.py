"""Nearest-rank percentiles with source-run provenance.

Each percentile carries the run occupying its rank so that rates derived from
a percentile divide by that run's own duration, never by an averaged one.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import Final

from .dto import FieldPercentiles, PercentileResult, Run

PERCENTILE_RANKS: Final[dict[str, float]] = {
    "p99": 0.99,
    "p90": 0.90,
    "p75": 0.75,
    "p50": 0.50,
}


def percentile_index(rank: float, count: int) -> int:
    """Return the nearest-rank index `min(floor(rank * count), count - 1)`."""

    return min(math.floor(rank * count), count - 1)


def calculate_field_percentiles(
    runs: Iterable[Run],
    value_getter: Callable[[Run], float | None],
) -> FieldPercentiles:
    """Compute P99/P90/P75/P50 for a field, tracking the source run of each.

    Args:
        runs: Runs to rank.
        value_getter: Callable returning the field value of a run, or None
            when the run has no value for the field.

    Returns:
        FieldPercentiles whose entries are None when no run has a value.

    Notes:
        The sort is stable, so when several runs share the value at a
        percentile rank the attached run (and therefore its duration) follows
        the input order.
    """

    valued: list[tuple[float, Run]] = []
    for run in runs:
        value = value_getter(run)
        if value is None:
            continue
        valued.append((value, run))

    if not valued:
        return FieldPercentiles()

    valued.sort(key=lambda pair: pair[0])
    count = len(valued)

    results: dict[str, PercentileResult] = {}
    for name, rank in PERCENTILE_RANKS.items():
        value, run = valued[percentile_index(rank, count)]
        results[name] = PercentileResult(value=value, source_run=run, duration=run.real_time)
    return FieldPercentiles(**results)
