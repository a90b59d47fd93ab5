"""Per-tier field statistics.

For every tier and selected field the calculator reports the maximum value,
nearest-rank percentiles, and hourly rates. A percentile's hourly rate divides
by the duration of the run occupying that percentile, so it reflects a pace
that was actually achieved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Final

from .categories import FieldDataType, TierStatsAggregation
from .dto import (
    AvailableField,
    DynamicTierStats,
    FieldStats,
    PercentileResult,
    Run,
    TierStatsColumnConfig,
    TierStatsSummary,
)
from .fields import numeric_field_value
from .percentiles import calculate_field_percentiles
from .rates import per_hour

logger = logging.getLogger(__name__)

DEFAULT_TIER_STATS_COLUMNS: Final[tuple[TierStatsColumnConfig, ...]] = (
    TierStatsColumnConfig("wave"),
    TierStatsColumnConfig("realTime"),
    TierStatsColumnConfig("coinsEarned", show_hourly_rate=True),
    TierStatsColumnConfig("cellsEarned", show_hourly_rate=True),
)

AGGREGATION_LABELS: Final[dict[TierStatsAggregation, str]] = {
    TierStatsAggregation.max: "Maximum",
    TierStatsAggregation.p99: "P99",
    TierStatsAggregation.p90: "P90",
    TierStatsAggregation.p75: "P75",
    TierStatsAggregation.p50: "P50 (Median)",
}

AGGREGATION_DESCRIPTIONS: Final[dict[TierStatsAggregation, str]] = {
    TierStatsAggregation.max: "The highest value recorded for the tier.",
    TierStatsAggregation.p99: "Near-best value with extreme outliers removed.",
    TierStatsAggregation.p90: "Value reached or beaten by the best 10% of runs.",
    TierStatsAggregation.p75: "Value reached or beaten by the best quarter of runs.",
    TierStatsAggregation.p50: "The middle value: half of runs did better.",
}

# Fields that identify or group runs rather than measure them.
_EXCLUDED_FIELD_NAMES: Final[frozenset[str]] = frozenset({"tier", "runType"})


def calculate_field_stats(runs: Sequence[Run], field_name: str) -> FieldStats | None:
    """Compute statistics for one field across the runs of a tier.

    Args:
        runs: Runs of a single tier.
        field_name: Field to summarize.

    Returns:
        FieldStats, or None when no run holds a numeric value for the field.

    Notes:
        - The first run holding the maximum value wins ties.
        - The longest-duration run is tracked over every run, including runs
          missing the field.
        - `hourly_rate` is derived from the max value and its own run's
          duration, and is None when that duration is 0.
    """

    max_value: float | None = None
    max_value_run: Run | None = None
    longest_duration = 0
    longest_duration_run: Run | None = None

    for run in runs:
        value = numeric_field_value(run, field_name)
        if value is not None and (max_value is None or value > max_value):
            max_value = value
            max_value_run = run

        if run.real_time > longest_duration:
            longest_duration = run.real_time
            longest_duration_run = run

    if max_value is None or max_value_run is None:
        return None

    percentiles = calculate_field_percentiles(
        runs, lambda run: numeric_field_value(run, field_name)
    )

    return FieldStats(
        max_value=max_value,
        max_value_run=max_value_run,
        p99_value=_percentile_value(percentiles.p99),
        p99_duration=_percentile_duration(percentiles.p99),
        p90_value=_percentile_value(percentiles.p90),
        p90_duration=_percentile_duration(percentiles.p90),
        p75_value=_percentile_value(percentiles.p75),
        p75_duration=_percentile_duration(percentiles.p75),
        p50_value=_percentile_value(percentiles.p50),
        p50_duration=_percentile_duration(percentiles.p50),
        longest_duration=longest_duration,
        longest_duration_run=longest_duration_run,
        hourly_rate=per_hour(max_value, max_value_run.real_time),
    )


def _percentile_value(result: PercentileResult | None) -> float | None:
    return None if result is None else result.value


def _percentile_duration(result: PercentileResult | None) -> int | None:
    return None if result is None else result.duration


def calculate_dynamic_tier_stats(
    runs: Iterable[Run],
    selected_columns: Sequence[TierStatsColumnConfig],
) -> tuple[DynamicTierStats, ...]:
    """Compute stats for every tier and selected column.

    Runs without a tier are ignored. Fields no run of a tier holds are left
    out of that tier's `fields`. Tiers are ordered highest first.
    """

    tier_groups: dict[int, list[Run]] = {}
    skipped = 0
    for run in runs:
        if not run.tier:
            skipped += 1
            continue
        tier_groups.setdefault(run.tier, []).append(run)

    if skipped:
        logger.debug("Skipped %d runs without a tier.", skipped)

    tier_stats: list[DynamicTierStats] = []
    for tier, tier_runs in tier_groups.items():
        fields: dict[str, FieldStats] = {}
        for column in selected_columns:
            stats = calculate_field_stats(tier_runs, column.field_name)
            if stats is not None:
                fields[column.field_name] = stats
        tier_stats.append(DynamicTierStats(tier=tier, run_count=len(tier_runs), fields=fields))

    return tuple(sorted(tier_stats, key=lambda stats: stats.tier, reverse=True))


def percentile_data(
    field_stats: FieldStats,
    aggregation: TierStatsAggregation,
) -> tuple[float | None, int | None]:
    """Return the (value, source-run duration) pair for an aggregation."""

    if aggregation == TierStatsAggregation.p99:
        return field_stats.p99_value, field_stats.p99_duration
    if aggregation == TierStatsAggregation.p90:
        return field_stats.p90_value, field_stats.p90_duration
    if aggregation == TierStatsAggregation.p75:
        return field_stats.p75_value, field_stats.p75_duration
    if aggregation == TierStatsAggregation.p50:
        return field_stats.p50_value, field_stats.p50_duration
    return field_stats.max_value, field_stats.max_value_run.real_time


def get_cell_value(
    tier_stats: DynamicTierStats,
    field_name: str,
    is_hourly_rate: bool,
    aggregation: TierStatsAggregation = TierStatsAggregation.max,
) -> float | None:
    """Return the value displayed in a tier stats cell.

    Args:
        tier_stats: Stats of one tier.
        field_name: Column field.
        is_hourly_rate: Whether to return the value per hour.
        aggregation: MAX or a percentile.

    Returns:
        The aggregated value or its hourly rate; None when the field has no
        stats, or for an hourly percentile whose value or duration is missing
        or whose duration is 0.
    """

    field_stats = tier_stats.fields.get(field_name)
    if field_stats is None:
        return None

    value, duration = percentile_data(field_stats, aggregation)
    if not is_hourly_rate:
        return value

    if aggregation == TierStatsAggregation.max:
        return field_stats.hourly_rate

    if value is None or duration is None or duration == 0:
        return None
    return per_hour(value, duration)


def calculate_summary_stats(
    tier_stats: Sequence[DynamicTierStats],
    selected_columns: Sequence[TierStatsColumnConfig],
) -> TierStatsSummary:
    """Summarize tier count, run count and the highest max per column."""

    highest_values: dict[str, float] = {}
    total_runs = 0
    for tier in tier_stats:
        total_runs += tier.run_count
        for column in selected_columns:
            field_stats = tier.fields.get(column.field_name)
            if field_stats is None:
                continue
            current = highest_values.get(column.field_name)
            if current is None or field_stats.max_value > current:
                highest_values[column.field_name] = field_stats.max_value

    return TierStatsSummary(
        total_tiers=len(tier_stats),
        total_runs=total_runs,
        highest_values=highest_values,
    )


def discover_available_fields(runs: Sequence[Run]) -> tuple[AvailableField, ...]:
    """List the numeric fields of the first run that can become columns.

    Internal (`_`-prefixed), grouping, date and string fields are excluded.
    Hourly rates are offered for number fields only. Sorted by display name.
    """

    if not runs:
        return ()

    available: list[AvailableField] = []
    for field_name, field in runs[0].fields.items():
        if field_name.startswith("_") or field_name in _EXCLUDED_FIELD_NAMES:
            continue
        if field.data_type not in (FieldDataType.number, FieldDataType.duration):
            continue
        available.append(
            AvailableField(
                field_name=field_name,
                display_name=field.original_key or field_name,
                data_type=field.data_type,
                is_numeric=True,
                can_have_hourly_rate=field.data_type == FieldDataType.number,
            )
        )
    return tuple(sorted(available, key=lambda field: field.display_name.casefold()))


def column_display_name(
    field_name: str,
    is_hourly_rate: bool,
    available_fields: Iterable[AvailableField],
) -> str:
    """Return a column header, suffixing `/Hour` for hourly columns."""

    base_name = next(
        (field.display_name for field in available_fields if field.field_name == field_name),
        field_name,
    )
    if field_name == "realTime" and not is_hourly_rate:
        return "Longest Run Duration"
    return f"{base_name}/Hour" if is_hourly_rate else base_name
