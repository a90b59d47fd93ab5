"""Tests for the per-tier death cause breakdown."""

from __future__ import annotations

import pytest

from analysis.categories import RunType
from analysis.deaths import calculate_killed_by, radar_rows, radar_scale_max
from analysis.dto import Run
from analysis.quantity import create_run_field

pytestmark = pytest.mark.unit


def _killed(make_run, cause: str, *, tier: int | None = 10, run_type: RunType = RunType.farm) -> Run:
    return make_run({"killedBy": create_run_field("Killed By", cause)}, tier=tier, run_type=run_type)


@pytest.mark.golden
def test_killed_by_counts_causes_per_tier(make_run) -> None:
    """Count causes per tier, most frequent first, lowest tier first."""

    runs = [
        _killed(make_run, "Boss", tier=12),
        _killed(make_run, "Ray", tier=12),
        _killed(make_run, "Boss", tier=12),
        _killed(make_run, "Fast", tier=12),
        _killed(make_run, "Scatter", tier=3),
    ]

    tiers = calculate_killed_by(runs)

    assert [tier.tier for tier in tiers] == [3, 12]
    twelve = tiers[1]
    assert twelve.total_deaths == 4
    assert [(stat.killed_by, stat.count, stat.percentage) for stat in twelve.stats] == [
        ("Boss", 2, 50.0),
        ("Ray", 1, 25.0),
        ("Fast", 1, 25.0),
    ]


def test_killed_by_skips_runs_without_tier_or_cause(make_run) -> None:
    """Ignore runs missing a tier or a death cause and honor the run type filter."""

    runs = [
        _killed(make_run, "Boss", tier=None),
        make_run({"wave": 10}),
        _killed(make_run, "  "),
        _killed(make_run, "Ray", run_type=RunType.tournament),
        _killed(make_run, "Boss"),
    ]

    (tier,) = calculate_killed_by(runs, run_type=RunType.farm)

    assert [(stat.killed_by, stat.count) for stat in tier.stats] == [("Boss", 1)]
    assert calculate_killed_by([]) == ()


def test_radar_rows_pivot_causes_across_tiers(make_run) -> None:
    """List every cause once with 0% for tiers where it never occurred."""

    tiers = calculate_killed_by(
        [
            _killed(make_run, "Boss", tier=5),
            _killed(make_run, "Ray", tier=5),
            _killed(make_run, "Ray", tier=6),
            _killed(make_run, "Ray", tier=6),
            _killed(make_run, "Ray", tier=6),
        ]
    )

    rows = radar_rows(tiers)

    assert [(row.killed_by, dict(row.percentages)) for row in rows] == [
        ("Boss", {5: 50.0, 6: 0.0}),
        ("Ray", {5: 50.0, 6: 100.0}),
    ]
    assert radar_scale_max(tiers) == 100


def test_radar_scale_rounds_up_to_four(make_run) -> None:
    """Round the radar maximum up to a multiple of four."""

    tiers = calculate_killed_by([_killed(make_run, cause) for cause in ("Boss", "Ray", "Fast")])

    assert tiers[0].stats[0].percentage == 33.33
    assert radar_scale_max(tiers) == 36
    assert radar_scale_max(()) == 0
