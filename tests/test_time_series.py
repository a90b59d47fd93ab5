"""Tests for single-field time series and their overlays."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pytest import approx

from analysis.categories import Duration, RunType
from analysis.dto import TimeSeriesFilters
from analysis.time_series import (
    calculate_time_series,
    days_in_period,
    moving_average,
    percent_changes,
)

pytestmark = pytest.mark.unit

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.golden
def test_moving_average_fills_after_the_window() -> None:
    """Average the trailing window, leaving leading points empty."""

    assert moving_average([10, 20, 30, 40, 50], 3) == [None, None, 20, 30, 40]
    assert moving_average([10, 20], 5) == [None, None]
    assert moving_average([], 3) == []


def test_moving_average_rejects_short_windows() -> None:
    """Refuse windows that would just repeat the series."""

    with pytest.raises(ValueError):
        moving_average([1.0, 2.0], 1)


@pytest.mark.golden
def test_percent_changes() -> None:
    """Measure each point against the previous one, starting at 0%."""

    assert percent_changes([100, 200, 150, 150]) == [0.0, 100.0, -25.0, 0.0]
    assert percent_changes([200, 100]) == [0.0, -50.0]
    assert percent_changes([0, 100]) == [0.0, 100.0]
    assert percent_changes([0, -50]) == [0.0, -100.0]
    assert percent_changes([0, 0]) == [0.0, 0.0]
    assert percent_changes([]) == []


@pytest.mark.parametrize(
    ("start", "duration", "reference", "expected"),
    [
        (datetime(2024, 11, 24), Duration.weekly, datetime(2024, 12, 7), 7),
        (datetime(2024, 12, 1), Duration.weekly, datetime(2024, 12, 4, 15), 4),
        (datetime(2024, 12, 1), Duration.weekly, datetime(2024, 12, 1), 1),
        (datetime(2024, 2, 1), Duration.monthly, datetime(2024, 12, 7), 29),
        (datetime(2023, 2, 1), Duration.monthly, datetime(2023, 12, 7), 28),
        (datetime(2024, 12, 1), Duration.monthly, datetime(2024, 12, 21), 21),
        (datetime(2024, 12, 1), Duration.daily, datetime(2024, 12, 21), None),
    ],
)
def test_days_in_period(
    start: datetime, duration: Duration, reference: datetime, expected: int | None
) -> None:
    """Spread past periods over every day and the current one over elapsed days."""

    assert days_in_period(start, duration, reference) == expected


def test_per_run_series_is_oldest_first(make_run) -> None:
    """Chart one point per run in timestamp order."""

    runs = [
        make_run({"coinsEarned": 300}, timestamp=BASE + timedelta(days=2)),
        make_run({"coinsEarned": 100}, timestamp=BASE),
        make_run({}, timestamp=BASE + timedelta(days=1)),
    ]

    data = calculate_time_series(runs, TimeSeriesFilters())

    assert [point.value for point in data.points] == [100, 0, 300]
    assert [point.label for point in data.points] == ["May 1", "May 2", "May 3"]
    assert data.points[0].period_key == "2024-05-01T12:00:00.000Z"
    assert data.points[0].run_info.tier == 10
    assert all(point.moving_average is None and point.percent_change is None for point in data.points)


def test_per_run_hourly_series_skips_runs_without_duration(make_run) -> None:
    """Convert values to hourly rates and drop runs with no real time."""

    runs = [
        make_run({"coinsEarned": 500}, timestamp=BASE, real_time=1800),
        make_run({"coinsEarned": 500}, timestamp=BASE + timedelta(hours=1), real_time=0),
    ]

    data = calculate_time_series(runs, TimeSeriesFilters(per_hour=True))

    assert [point.value for point in data.points] == [1000.0]


@pytest.mark.golden
def test_weekly_series_sums_and_spreads_over_days(make_run) -> None:
    """Total each Sunday-based week; the newest week only counts elapsed days."""

    runs = [
        make_run({"coinsEarned": 700}, timestamp=BASE),
        make_run({"coinsEarned": 700}, timestamp=BASE + timedelta(days=1)),
        make_run({"coinsEarned": 300}, timestamp=datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)),
    ]

    data = calculate_time_series(runs, TimeSeriesFilters(duration=Duration.weekly))

    assert [point.period_key for point in data.points] == ["2024-04-28", "2024-05-05"]
    assert [point.label for point in data.points] == ["Apr 28", "May 5"]
    assert [point.value for point in data.points] == [1400, 300]
    assert [point.run_count for point in data.points] == [2, 1]
    assert [point.days_in_period for point in data.points] == [7, 2]
    assert [point.daily_average for point in data.points] == [200, 150]
    assert data.points[0].timestamp == datetime(2024, 4, 28, tzinfo=timezone.utc)


def test_explicit_reference_closes_past_periods(make_run) -> None:
    """Count the full month once the reference has moved past it."""

    runs = [make_run({"coinsEarned": 3100}, timestamp=datetime(2024, 10, 20, tzinfo=timezone.utc))]

    data = calculate_time_series(
        runs,
        TimeSeriesFilters(duration=Duration.monthly),
        reference=datetime(2024, 12, 7, tzinfo=timezone.utc),
    )

    (point,) = data.points
    assert (point.label, point.days_in_period, point.daily_average) == ("Oct '24", 31, 100)


def test_calendar_hourly_series_divides_by_combined_hours(make_run) -> None:
    """Divide a bucket's total by its runs' combined hours."""

    runs = [
        make_run({"coinsEarned": 3000}, timestamp=BASE, real_time=3600),
        make_run({"coinsEarned": 3000}, timestamp=BASE + timedelta(hours=4), real_time=7200),
    ]

    data = calculate_time_series(runs, TimeSeriesFilters(duration=Duration.daily, per_hour=True))

    (point,) = data.points
    assert point.value == approx(2000.0)
    assert point.daily_average is None


def test_overlays_follow_the_quantity_limit(make_run) -> None:
    """Compute the moving average and percent change on the returned points."""

    runs = [
        make_run({"coinsEarned": value}, timestamp=BASE + timedelta(days=index))
        for index, value in enumerate([10, 20, 30, 40, 50])
    ]
    filters = TimeSeriesFilters(quantity=4, moving_average_window=2, include_percent_change=True)

    data = calculate_time_series(runs, filters)

    assert [point.value for point in data.points] == [20, 30, 40, 50]
    assert [point.moving_average for point in data.points] == [None, 25, 35, 45]
    assert [point.percent_change for point in data.points] == approx([0.0, 50.0, 100 / 3, 25.0])


def test_series_filters_by_run_type_and_tier(make_run) -> None:
    """Keep only runs matching the run type and tier filters."""

    runs = [
        make_run({"wave": 100}, timestamp=BASE, tier=5),
        make_run({"wave": 200}, timestamp=BASE, tier=6),
        make_run({"wave": 300}, timestamp=BASE, tier=5, run_type=RunType.tournament),
    ]
    filters = TimeSeriesFilters(field_name="wave", run_type=RunType.farm, tier=5)

    data = calculate_time_series(runs, filters)

    assert [point.value for point in data.points] == [100]
    assert calculate_time_series([], filters).points == ()
