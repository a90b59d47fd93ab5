"""Aggregation helpers for the Analysis Engine.

This module provides deterministic, reusable aggregation functions used to
collapse a period's runs into a single value for tier trends and time
series, without introducing Django dependencies.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .categories import Duration, FieldDataType, TrendsAggregation
from .dto import Run
from .fields import is_numeric_value
from .rates import total_duration_hours


def sum_aggregation(values: Sequence[float]) -> float:
    """Return the total of the values (0 for none)."""

    return float(sum(values))


def average_aggregation(values: Sequence[float]) -> float:
    """Return the arithmetic mean of the values (0 for none)."""

    if not values:
        return 0.0
    return sum(values) / len(values)


def min_aggregation(values: Sequence[float]) -> float:
    """Return the smallest value (0 for none)."""

    return float(min(values)) if values else 0.0


def max_aggregation(values: Sequence[float]) -> float:
    """Return the largest value (0 for none)."""

    return float(max(values)) if values else 0.0


def hourly_aggregation(values: Sequence[float], runs: Iterable[Run]) -> float:
    """Return the summed values divided by the runs' combined hours.

    Returns 0 when there are no values or the runs have no recorded duration.
    """

    if not values:
        return 0.0
    hours = total_duration_hours(runs)
    if hours <= 0:
        return 0.0
    return sum(values) / hours


def default_aggregation(duration: Duration) -> TrendsAggregation:
    """Return the default strategy for a duration.

    Per-run columns hold one run, so the average shows its raw value; calendar
    periods default to the total accumulated over the period.
    """

    if duration == Duration.per_run:
        return TrendsAggregation.average
    return TrendsAggregation.sum


def apply_aggregation(
    values: Sequence[float],
    runs: Sequence[Run],
    aggregation: TrendsAggregation | None,
) -> float:
    """Collapse values with the given strategy (average when None).

    Args:
        values: Values extracted from `runs`.
        runs: Runs the values came from; used by the hourly strategy.
        aggregation: Strategy to apply.

    Returns:
        The aggregated value; 0 for an empty value list.
    """

    if not values:
        return 0.0
    if aggregation == TrendsAggregation.sum:
        return sum_aggregation(values)
    if aggregation == TrendsAggregation.min:
        return min_aggregation(values)
    if aggregation == TrendsAggregation.max:
        return max_aggregation(values)
    if aggregation == TrendsAggregation.hourly:
        return hourly_aggregation(values, runs)
    return average_aggregation(values)


def aggregate_period_values(
    runs: Sequence[Run],
    field_names: Iterable[str],
    aggregation: TrendsAggregation | None,
) -> dict[str, float]:
    """Aggregate each field across a period's runs.

    Only number and duration fields holding a numeric value contribute; a
    field no run holds aggregates to 0.
    """

    result: dict[str, float] = {}
    for field_name in field_names:
        values: list[float] = []
        for run in runs:
            field = run.fields.get(field_name)
            if field is None:
                continue
            if field.data_type not in (FieldDataType.number, FieldDataType.duration):
                continue
            if not is_numeric_value(field.value):
                continue
            values.append(float(field.value))
        result[field_name] = apply_aggregation(values, runs, aggregation)
    return result
