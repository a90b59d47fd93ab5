"""Tests for nearest-rank percentiles with source-run provenance."""

from __future__ import annotations

import pytest

from analysis.fields import numeric_field_value
from analysis.percentiles import calculate_field_percentiles, percentile_index

pytestmark = pytest.mark.unit


def _coins(run) -> float | None:
    return numeric_field_value(run, "coinsEarned")


def test_percentile_index_is_nearest_rank_clamped() -> None:
    """Floor the rank position and clamp to the last element."""

    assert percentile_index(0.5, 10) == 5
    assert percentile_index(0.9, 10) == 9
    assert percentile_index(0.99, 10) == 9
    assert percentile_index(0.99, 1) == 0


def test_percentiles_on_ten_runs(make_run) -> None:
    """Pick P50/P90 values and durations from the ranked runs."""

    runs = [
        make_run({"coinsEarned": value}, real_time=1000 + value)
        for value in (700, 100, 1000, 300, 500, 200, 900, 400, 600, 800)
    ]

    percentiles = calculate_field_percentiles(runs, _coins)

    assert percentiles.p50 is not None and percentiles.p90 is not None
    assert percentiles.p50.value == 600
    assert percentiles.p50.duration == 1600
    assert percentiles.p90.value == 1000
    assert percentiles.p90.duration == 2000
    assert percentiles.p75 is not None and percentiles.p75.value == 800
    assert percentiles.p99 is not None and percentiles.p99.source_run is percentiles.p90.source_run


def test_single_run_fills_every_percentile(make_run) -> None:
    """Return the only run for every percentile."""

    run = make_run({"coinsEarned": 42}, real_time=90)

    percentiles = calculate_field_percentiles([run], _coins)

    for result in (percentiles.p50, percentiles.p75, percentiles.p90, percentiles.p99):
        assert result is not None
        assert (result.value, result.duration, result.source_run) == (42, 90, run)


def test_runs_without_values_are_excluded(make_run) -> None:
    """Skip runs missing the field and return None when none remain."""

    empty = calculate_field_percentiles([make_run(), make_run()], _coins)
    assert empty.p50 is None and empty.p99 is None

    mixed = calculate_field_percentiles([make_run(), make_run({"coinsEarned": 5})], _coins)
    assert mixed.p50 is not None and mixed.p50.value == 5


def test_ties_keep_input_order(make_run) -> None:
    """Attach the first tied run in input order (stable sort)."""

    first = make_run({"coinsEarned": 10}, real_time=100)
    second = make_run({"coinsEarned": 10}, real_time=200)

    percentiles = calculate_field_percentiles([first, second], _coins)

    assert percentiles.p50 is not None
    assert percentiles.p50.source_run is second
    reversed_order = calculate_field_percentiles([second, first], _coins)
    assert reversed_order.p50 is not None and reversed_order.p50.duration == 100
