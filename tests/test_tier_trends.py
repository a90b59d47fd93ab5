"""Tests for trend deltas, aggregation strategies and tier trends."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pytest import approx

from analysis.aggregations import (
    aggregate_period_values,
    apply_aggregation,
    default_aggregation,
)
from analysis.categories import (
    Duration,
    RunType,
    TrendDirection,
    TrendsAggregation,
    TrendSignificance,
    TrendType,
)
from analysis.deltas import delta, series_delta, significance
from analysis.dto import TierTrendsFilters
from analysis.quantity import create_run_field
from analysis.tier_trends import (
    analyze_trend_type,
    available_tiers_for_trends,
    build_trend_periods,
    calculate_tier_trends,
    run_header,
)

pytestmark = pytest.mark.unit

BASE = datetime(2024, 8, 17, 15, 45, tzinfo=timezone.utc)


@pytest.mark.golden
def test_delta_up_ten_percent() -> None:
    """Report a 10% rise from 1000 to 1100."""

    change = delta(1000, 1100)

    assert (change.absolute, change.percent, change.direction) == (100, 10.0, TrendDirection.up)


@pytest.mark.golden
def test_delta_from_zero_base() -> None:
    """Treat growth from zero as a 100% rise."""

    change = delta(0, 100)

    assert (change.percent, change.direction) == (100.0, TrendDirection.up)
    assert delta(0, 0).direction == TrendDirection.stable


def test_delta_dead_zone_and_negative_base() -> None:
    """Keep tiny moves stable and divide by the absolute base."""

    assert delta(10_000, 10_005).direction == TrendDirection.stable
    change = delta(-200, -100)
    assert change.percent == approx(50.0)
    assert change.direction == TrendDirection.up
    assert delta(200, 100).direction == TrendDirection.down
    assert series_delta([]).percent == 0.0


def test_significance_buckets() -> None:
    """Bucket changes against the threshold."""

    assert significance(25, 10) == TrendSignificance.high
    assert significance(-12, 10) == TrendSignificance.medium
    assert significance(5, 10) == TrendSignificance.low


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        ([1, 2], TrendType.stable),
        ([1, 2, 3, 4, 5], TrendType.upward),
        ([5, 4, 3, 2, 1], TrendType.downward),
        ([3, 3, 3, 3], TrendType.stable),
        ([1, 5, 1, 5, 1], TrendType.volatile),
        ([1, 2, 2, 1, 1], TrendType.linear),
    ],
)
def test_analyze_trend_type(values: list[float], expected: TrendType) -> None:
    """Classify series shapes from consecutive deltas."""

    assert analyze_trend_type(values) == expected


def test_aggregation_strategies(make_run) -> None:
    """Collapse values with each strategy; hourly divides by total hours."""

    runs = [make_run(real_time=1800), make_run(real_time=5400)]
    values = [10.0, 30.0]

    assert apply_aggregation(values, runs, TrendsAggregation.sum) == 40
    assert apply_aggregation(values, runs, TrendsAggregation.average) == 20
    assert apply_aggregation(values, runs, TrendsAggregation.min) == 10
    assert apply_aggregation(values, runs, TrendsAggregation.max) == 30
    assert apply_aggregation(values, runs, TrendsAggregation.hourly) == approx(20.0)
    assert apply_aggregation(values, runs, None) == 20
    assert apply_aggregation([], runs, TrendsAggregation.sum) == 0
    assert default_aggregation(Duration.per_run) == TrendsAggregation.average
    assert default_aggregation(Duration.weekly) == TrendsAggregation.sum


def test_aggregate_period_values_skips_text(make_run) -> None:
    """Aggregate numeric fields only, defaulting absent fields to 0."""

    runs = [
        make_run({"wave": 100, "killedBy": create_run_field("Killed By", "Boss")}),
        make_run({"wave": 300}),
    ]

    values = aggregate_period_values(runs, ["wave", "killedBy", "missing"], TrendsAggregation.average)

    assert values == {"wave": 200, "killedBy": 0, "missing": 0}


def test_run_header(make_run) -> None:
    """Render a three-line per-run column header."""

    run = make_run(timestamp=BASE, tier=10, wave=6008, real_time=8 * 3600 + 43 * 60)

    assert run_header(run) == "T10 6,008\n8hr 43min\n8/17 3:45 PM"


def test_build_trend_periods_calendar_includes_empty_periods(make_run) -> None:
    """Build consecutive daily periods anchored on the newest run."""

    runs = [make_run(timestamp=BASE), make_run(timestamp=BASE - timedelta(days=2))]

    periods = build_trend_periods(runs, Duration.daily, 3)

    assert [period.label for period in periods] == ["8/17", "8/16", "8/15"]
    assert [len(period.runs) for period in periods] == [1, 0, 1]
    assert build_trend_periods([], Duration.daily, 3) == ()


@pytest.mark.regression
def test_build_trend_periods_keeps_runs_in_the_last_microsecond(make_run) -> None:
    """Keep runs stamped within the final millisecond of a day in that day."""

    late = datetime(2024, 3, 15, 23, 59, 59, 999_500, tzinfo=timezone.utc)
    runs = [make_run(timestamp=late), make_run(timestamp=late - timedelta(days=1))]

    periods = build_trend_periods(runs, Duration.daily, 2)

    assert [period.label for period in periods] == ["3/15", "3/14"]
    assert [len(period.runs) for period in periods] == [1, 1]


def test_tier_trends_per_run(make_run) -> None:
    """Trend every numeric field across the newest runs of a tier."""

    runs = [
        make_run({"coinsEarned": 1000, "wave": 500}, timestamp=BASE - timedelta(days=2), tier=10),
        make_run({"coinsEarned": 1050, "wave": 500}, timestamp=BASE - timedelta(days=1), tier=10),
        make_run({"coinsEarned": 1100, "wave": 400}, timestamp=BASE, tier=10),
        make_run({"coinsEarned": 9999}, timestamp=BASE, tier=11),
        make_run({"coinsEarned": 1}, timestamp=BASE, tier=10, run_type=RunType.tournament),
    ]

    data = calculate_tier_trends(runs, TierTrendsFilters(tier=10, quantity=5))

    assert data.period_count == 3
    assert len(data.comparison_columns) == 3
    assert data.comparison_columns[0].values["coinsEarned"] == 1100
    trends = {trend.field_name: trend for trend in data.field_trends}
    assert trends["coinsEarned"].values == (1000, 1050, 1100)
    assert trends["coinsEarned"].change.percent == approx(10.0)
    assert trends["coinsEarned"].trend_type == TrendType.upward
    assert trends["wave"].change.direction == TrendDirection.down
    assert [trend.field_name for trend in data.field_trends][0] == "wave"
    assert data.summary.top_gainers[0].field_name == "coinsEarned"
    assert data.summary.top_decliners[0].field_name == "wave"


def test_tier_trends_threshold_excludes_small_changes(make_run) -> None:
    """Drop fields whose change is below the threshold."""

    runs = [
        make_run({"coinsEarned": 1000, "wave": 500}, timestamp=BASE - timedelta(days=1)),
        make_run({"coinsEarned": 1500, "wave": 505}, timestamp=BASE),
    ]

    data = calculate_tier_trends(runs, TierTrendsFilters(change_threshold_percent=5.0))

    assert [trend.field_name for trend in data.field_trends] == ["coinsEarned"]
    assert data.field_trends[0].significance == TrendSignificance.high
    assert data.summary.fields_changed == 1


def test_tier_trends_hourly_columns_have_hour_subheaders(make_run) -> None:
    """Label calendar columns with their total hours under hourly aggregation."""

    runs = [
        make_run({"coinsEarned": 3600}, timestamp=BASE, real_time=5400),
        make_run({"coinsEarned": 1800}, timestamp=BASE - timedelta(days=1), real_time=3600),
    ]
    filters = TierTrendsFilters(
        duration=Duration.daily, quantity=2, aggregation_type=TrendsAggregation.hourly
    )

    data = calculate_tier_trends(runs, filters)

    assert [column.sub_header for column in data.comparison_columns] == ["1.5 hours", "1 hour"]
    assert data.comparison_columns[0].values["coinsEarned"] == approx(2400.0)


def test_tier_trends_needs_two_periods(make_run) -> None:
    """Return an empty result with fewer than two periods."""

    data = calculate_tier_trends([make_run({"coinsEarned": 1})], TierTrendsFilters())

    assert data.field_trends == ()
    assert data.summary.total_fields == 0


def test_available_tiers_for_trends(make_run) -> None:
    """List tiers with at least two runs, highest first."""

    runs = [make_run(tier=tier) for tier in (3, 3, 8, 8, 8, 12)]

    assert available_tiers_for_trends(runs) == [8, 3]
