"""Death cause breakdown: which enemy ended the runs of each tier."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Final

from .dto import KilledByRadarRow, KilledByStat, Run, RunTypeFilter, TierKilledByData
from .fields import text_field_value
from .rates import calculate_percentage
from .source_analysis import filter_runs

KILLED_BY_FIELD: Final[str] = "killedBy"

# Radar charts draw four rings.
_RADAR_RINGS: Final[int] = 4


def calculate_killed_by(
    runs: Iterable[Run],
    *,
    run_type: RunTypeFilter = "all",
) -> tuple[TierKilledByData, ...]:
    """Count death causes per tier.

    Runs without a tier or a `killedBy` value are ignored.

    Returns:
        One entry per tier, lowest tier first. Causes are ordered by count
        descending; ties keep the order they were first seen in.
    """

    counts_by_tier: dict[int, dict[str, int]] = {}
    for run in filter_runs(runs, run_type=run_type):
        killed_by = text_field_value(run, KILLED_BY_FIELD)
        if run.tier is None or killed_by is None:
            continue
        counts = counts_by_tier.setdefault(run.tier, {})
        counts[killed_by] = counts.get(killed_by, 0) + 1

    result: list[TierKilledByData] = []
    for tier in sorted(counts_by_tier):
        counts = counts_by_tier[tier]
        total = sum(counts.values())
        stats = sorted(
            (
                KilledByStat(killed_by=cause, count=count, percentage=calculate_percentage(count, total))
                for cause, count in counts.items()
            ),
            key=lambda stat: stat.count,
            reverse=True,
        )
        result.append(TierKilledByData(tier=tier, total_deaths=total, stats=tuple(stats)))
    return tuple(result)


def radar_rows(tier_data: Sequence[TierKilledByData]) -> tuple[KilledByRadarRow, ...]:
    """Pivot per-tier stats into one row per cause across every given tier."""

    causes: dict[str, None] = {}
    for tier in tier_data:
        for stat in tier.stats:
            causes.setdefault(stat.killed_by)

    rows: list[KilledByRadarRow] = []
    for cause in causes:
        percentages = {
            tier.tier: next((stat.percentage for stat in tier.stats if stat.killed_by == cause), 0.0)
            for tier in tier_data
        }
        rows.append(KilledByRadarRow(killed_by=cause, percentages=percentages))
    return tuple(rows)


def radar_scale_max(tier_data: Sequence[TierKilledByData]) -> int:
    """Return the radar axis maximum: the top percentage rounded up to a multiple of 4."""

    top = max((stat.percentage for tier in tier_data for stat in tier.stats), default=0.0)
    return math.ceil(top / _RADAR_RINGS) * _RADAR_RINGS
