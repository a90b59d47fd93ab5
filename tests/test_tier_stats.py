"""Tests for per-tier field statistics and cell values."""

from __future__ import annotations

import random

import pytest
from pytest import approx

from analysis.categories import FieldDataType, TierStatsAggregation
from analysis.dto import TierStatsColumnConfig
from analysis.quantity import create_run_field
from analysis.tier_stats import (
    AGGREGATION_LABELS,
    DEFAULT_TIER_STATS_COLUMNS,
    calculate_dynamic_tier_stats,
    calculate_field_stats,
    calculate_summary_stats,
    column_display_name,
    discover_available_fields,
    get_cell_value,
)

pytestmark = pytest.mark.unit

COINS = TierStatsColumnConfig("coinsEarned", show_hourly_rate=True)


def test_field_stats_returns_none_without_values(make_run) -> None:
    """Return None when no run holds the field."""

    assert calculate_field_stats([make_run(), make_run()], "coinsEarned") is None


def test_field_stats_tracks_max_and_longest_run(make_run) -> None:
    """Keep the first max and the longest run independently."""

    first_max = make_run({"coinsEarned": 900}, real_time=1800)
    second_max = make_run({"coinsEarned": 900}, real_time=3600)
    longest = make_run({}, real_time=7200)

    stats = calculate_field_stats([first_max, second_max, longest], "coinsEarned")

    assert stats is not None
    assert stats.max_value == 900
    assert stats.max_value_run is first_max
    assert stats.longest_duration == 7200
    assert stats.longest_duration_run is longest
    assert stats.hourly_rate == approx(1800.0)


def test_max_hourly_rate_is_none_for_zero_duration(make_run) -> None:
    """Leave the hourly rate unset when the max run has no duration."""

    stats = calculate_field_stats([make_run({"coinsEarned": 10}, real_time=0)], "coinsEarned")

    assert stats is not None
    assert stats.hourly_rate is None


def test_percentile_hourly_rate_uses_its_own_run_duration(make_run) -> None:
    """Divide a percentile value by the duration of the run that produced it."""

    runs = [
        make_run({"coinsEarned": 100}, real_time=3600),
        make_run({"coinsEarned": 200}, real_time=1800),
        make_run({"coinsEarned": 300}, real_time=7200),
        make_run({"coinsEarned": 400}, real_time=3600),
    ]
    tier = calculate_dynamic_tier_stats(runs, [COINS])[0]

    # P50 lands on index 2 (300 coins over 2 hours).
    assert get_cell_value(tier, "coinsEarned", False, TierStatsAggregation.p50) == 300
    assert get_cell_value(tier, "coinsEarned", True, TierStatsAggregation.p50) == approx(150.0)
    assert get_cell_value(tier, "coinsEarned", True, TierStatsAggregation.max) == approx(400.0)


def test_p90_hourly_never_exceeds_max_hourly_for_equal_durations(make_run) -> None:
    """Keep P90/hour at or below MAX/hour across randomized same-duration runs."""

    rng = random.Random(1234)
    for _ in range(50):
        duration = rng.randint(600, 36_000)
        runs = [
            make_run({"coinsEarned": rng.uniform(0, 1e9)}, real_time=duration, tier=rng.randint(1, 3))
            for _ in range(rng.randint(1, 40))
        ]
        for tier in calculate_dynamic_tier_stats(runs, [COINS]):
            p90 = get_cell_value(tier, "coinsEarned", True, TierStatsAggregation.p90)
            maximum = get_cell_value(tier, "coinsEarned", True, TierStatsAggregation.max)
            assert p90 is not None and maximum is not None
            assert p90 <= maximum


def test_cell_value_missing_field_is_none(make_run) -> None:
    """Return None for fields without stats in a tier."""

    tier = calculate_dynamic_tier_stats([make_run({"wave": 10})], [COINS])[0]

    assert get_cell_value(tier, "coinsEarned", True) is None


def test_dynamic_tier_stats_groups_and_sorts_tiers(make_run) -> None:
    """Partition runs by tier, skip tierless runs, highest tier first."""

    runs = [
        make_run({"coinsEarned": 1}, tier=3),
        make_run({"coinsEarned": 2}, tier=11),
        make_run({"coinsEarned": 3}, tier=3),
        make_run({"coinsEarned": 4}, tier=None),
    ]

    stats = calculate_dynamic_tier_stats(runs, [COINS])

    assert [(tier.tier, tier.run_count) for tier in stats] == [(11, 1), (3, 2)]
    summary = calculate_summary_stats(stats, [COINS])
    assert (summary.total_tiers, summary.total_runs) == (2, 3)
    assert summary.highest_values == {"coinsEarned": 3}


def test_discover_available_fields(make_run) -> None:
    """Offer numeric fields of the first run, sorted by display name."""

    run = make_run(
        {
            "wave": 4000,
            "tier": 10,
            "_internal": 1,
            "killedBy": create_run_field("Killed By", "Boss"),
        }
    )

    available = discover_available_fields([run])

    assert [field.field_name for field in available] == ["realTime", "wave"]
    real_time = available[0]
    assert real_time.data_type == FieldDataType.duration
    assert real_time.can_have_hourly_rate is False
    assert available[1].can_have_hourly_rate is True
    assert discover_available_fields([]) == ()


def test_column_display_names(make_run) -> None:
    """Name columns after report labels, with special realTime handling."""

    available = discover_available_fields([make_run({"coinsEarned": 1})])

    assert column_display_name("coinsEarned", True, available) == "coinsEarned/Hour"
    assert column_display_name("realTime", False, available) == "Longest Run Duration"
    assert column_display_name("unknown", False, available) == "unknown"


def test_default_columns_and_labels() -> None:
    """Expose default columns and aggregation labels."""

    assert [column.field_name for column in DEFAULT_TIER_STATS_COLUMNS] == [
        "wave",
        "realTime",
        "coinsEarned",
        "cellsEarned",
    ]
    assert AGGREGATION_LABELS[TierStatsAggregation.p50] == "P50 (Median)"
