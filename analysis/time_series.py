"""Single-field time series with moving average and percent change overlays.

Per-run series chart one point per run; calendar series sum each bucket (or
divide the bucket total by its combined hours for hourly rates). Overlays are
computed on the points actually returned, after the `quantity` limit.
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime

from .aggregations import apply_aggregation
from .categories import Duration, TrendsAggregation
from .dto import Run, RunInfo, TimeSeriesData, TimeSeriesFilters, TimeSeriesPoint
from .fields import extract_field_value
from .periods import parse_period_key, period_key, period_label
from .rates import per_hour
from .source_analysis import filter_runs, group_runs_by_period

logger = logging.getLogger(__name__)


def moving_average(values: Sequence[float], window: int) -> list[float | None]:
    """Compute a trailing simple moving average.

    Args:
        values: Series values, oldest first.
        window: Number of points averaged (>= 2).

    Returns:
        A list aligned with `values`; None until `window` points are available.

    Raises:
        ValueError: When `window` is smaller than 2.
    """

    if window < 2:
        raise ValueError("window must be >= 2")

    averaged: list[float | None] = []
    running = 0.0
    for index, value in enumerate(values):
        running += value
        if index >= window:
            running -= values[index - window]
        averaged.append(running / window if index >= window - 1 else None)
    return averaged


def point_percent_change(previous: float, current: float) -> float:
    """Return the percent change between consecutive points.

    From a zero base, any rise is +100% and any fall -100%.
    """

    if previous == 0:
        if current > 0:
            return 100.0
        if current < 0:
            return -100.0
        return 0.0
    return ((current - previous) / abs(previous)) * 100


def percent_changes(values: Sequence[float]) -> list[float]:
    """Return each point's change from the previous one; the first is 0."""

    return [
        0.0 if index == 0 else point_percent_change(values[index - 1], value)
        for index, value in enumerate(values)
    ]


def days_in_period(start: datetime, duration: Duration, reference: datetime | None) -> int | None:
    """Return the number of days a weekly or monthly total is spread over.

    Past periods count every day; the period holding `reference` counts only
    the days up to and including the reference day. Other durations have no
    daily average.
    """

    if duration == Duration.weekly:
        full = 7
    elif duration == Duration.monthly:
        full = calendar.monthrange(start.year, start.month)[1]
    else:
        return None

    if reference is not None and period_key(reference, duration) == period_key(start, duration):
        return min(full, (reference.date() - start.date()).days + 1)
    return full


def _run_point(run: Run, filters: TimeSeriesFilters) -> TimeSeriesPoint | None:
    value = extract_field_value(run, filters.field_name)
    if filters.per_hour:
        rate = per_hour(value, run.real_time)
        if rate is None:
            return None
        value = rate
    return TimeSeriesPoint(
        period_key=period_key(run.timestamp, Duration.per_run),
        label=period_label(period_key(run.timestamp, Duration.daily), Duration.daily),
        timestamp=run.timestamp,
        value=value,
        run_count=1,
        run_info=RunInfo(
            tier=run.tier, wave=run.wave, real_time=run.real_time, timestamp=run.timestamp
        ),
    )


def _period_point(
    key: str,
    runs: Sequence[Run],
    filters: TimeSeriesFilters,
    reference: datetime | None,
) -> TimeSeriesPoint:
    values = [extract_field_value(run, filters.field_name) for run in runs]
    aggregation = TrendsAggregation.hourly if filters.per_hour else TrendsAggregation.sum
    total = apply_aggregation(values, runs, aggregation)

    start = parse_period_key(key, filters.duration).replace(tzinfo=runs[0].timestamp.tzinfo)
    days = None if filters.per_hour else days_in_period(start, filters.duration, reference)
    return TimeSeriesPoint(
        period_key=key,
        label=period_label(key, filters.duration),
        timestamp=start,
        value=total,
        run_count=len(runs),
        daily_average=None if days is None else total / days,
        days_in_period=days,
    )


def calculate_time_series(
    runs: Iterable[Run],
    filters: TimeSeriesFilters,
    *,
    reference: datetime | None = None,
) -> TimeSeriesData:
    """Build a field's time series.

    Args:
        runs: Runs in any order.
        filters: Series configuration.
        reference: The "current" moment for partial weekly/monthly daily
            averages; defaults to the newest run's timestamp.

    Returns:
        TimeSeriesData with points ordered oldest first. Hourly per-run series
        skip runs without a recorded duration.

    Raises:
        ValueError: When the moving average window is smaller than 2.
    """

    filtered = filter_runs(runs, run_type=filters.run_type, tier=filters.tier)
    ordered = sorted(filtered, key=lambda run: run.timestamp)

    points: list[TimeSeriesPoint]
    if filters.duration == Duration.per_run:
        points = [point for point in (_run_point(run, filters) for run in ordered) if point is not None]
    else:
        if reference is None and ordered:
            reference = ordered[-1].timestamp
        points = [
            _period_point(key, period_runs, filters, reference)
            for key, period_runs in group_runs_by_period(ordered, filters.duration).items()
        ]

    if filters.quantity is not None:
        points = points[-filters.quantity :] if filters.quantity > 0 else []

    values = [point.value for point in points]
    if filters.moving_average_window is not None:
        averages = moving_average(values, filters.moving_average_window)
        points = [replace(point, moving_average=average) for point, average in zip(points, averages)]
    if filters.include_percent_change:
        changes = percent_changes(values)
        points = [replace(point, percent_change=change) for point, change in zip(points, changes)]

    logger.debug(
        "Time series for %s: %d runs, %d points (%s).",
        filters.field_name,
        len(ordered),
        len(points),
        filters.duration,
    )
    return TimeSeriesData(filters=filters, points=tuple(points))
