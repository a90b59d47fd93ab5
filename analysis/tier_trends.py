"""Tier trends: how each numeric field moves across recent periods.

Runs of one tier (or every tier) are split into the most recent N periods,
each period is collapsed into one value per field, and the first-to-last
change of every field is classified by direction, significance and shape.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Final

from .aggregations import aggregate_period_values, default_aggregation
from .categories import (
    Duration,
    FieldDataType,
    RunType,
    TrendDirection,
    TrendsAggregation,
    TrendType,
)
from .deltas import series_delta, significance
from .dto import (
    ComparisonColumn,
    FieldTrendData,
    Run,
    RunField,
    RunTypeFilter,
    TierTrendsData,
    TierTrendsFilters,
    TierTrendsSummary,
    TrendPeriod,
)
from .fields import is_numeric_value
from .periods import calendar_period_bounds
from .rates import format_hours_subheader, total_duration_hours
from .source_analysis import filter_runs

logger = logging.getLogger(__name__)

TEXT_CATEGORICAL_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "killedBy",
        "killed_by",
        "Killed By",
        "runType",
        "run_type",
        "Run Type",
        "_runType",
        "_Run Type",
    }
)

# Fields that are numeric but identify the run rather than measure it.
NON_TREND_FIELDS: Final[frozenset[str]] = frozenset({"tier"})

# Share of consecutive deltas that must agree for a directional/stable shape.
_DOMINANT_SHARE: Final[float] = 0.7
# Share of sign reversals (relative to the delta count) marking a volatile shape.
_VOLATILE_SHARE: Final[float] = 0.5
_TOP_MOVERS: Final[int] = 3


def is_text_categorical_field(field_name: str) -> bool:
    """Return True for fields holding categorical text (killed by, run type)."""

    return field_name in TEXT_CATEGORICAL_FIELDS


def is_trendable_field(field_name: str, field: RunField) -> bool:
    """Return True when a field holds a number that can be trended."""

    if is_text_categorical_field(field_name) or field_name in NON_TREND_FIELDS:
        return False
    if field.data_type not in (FieldDataType.number, FieldDataType.duration):
        return False
    return is_numeric_value(field.value)


def trendable_fields(periods: Iterable[TrendPeriod]) -> list[str]:
    """Return trendable field names found in any run, in first-seen order."""

    seen: dict[str, None] = {}
    for period in periods:
        for run in period.runs:
            for field_name, field in run.fields.items():
                if field_name not in seen and is_trendable_field(field_name, field):
                    seen[field_name] = None
    return list(seen)


def run_header(run: Run) -> str:
    """Return a three-line column header for a single run.

    Lines: `T{tier} {wave}`, the real time as `8hr 43min`, and the battle
    time as `8/17 3:45 PM`.
    """

    wave = f"{run.wave:,}" if run.wave is not None else "-"
    tier = run.tier if run.tier is not None else "-"
    hours, remainder = divmod(run.real_time, 3600)
    minutes = remainder // 60
    hour_12 = run.timestamp.hour % 12 or 12
    meridiem = "AM" if run.timestamp.hour < 12 else "PM"
    stamp = (
        f"{run.timestamp.month}/{run.timestamp.day} "
        f"{hour_12}:{run.timestamp.minute:02d} {meridiem}"
    )
    return f"T{tier} {wave}\n{hours}hr {minutes}min\n{stamp}"


def build_trend_periods(
    runs: Sequence[Run],
    duration: Duration,
    quantity: int,
) -> tuple[TrendPeriod, ...]:
    """Split newest-first runs into trend periods, newest period first.

    Args:
        runs: Runs sorted newest first.
        duration: per-run, or a calendar duration.
        quantity: Number of periods.

    Returns:
        For per-run, one period per run for the newest `quantity` runs. For
        calendar durations, `quantity` consecutive periods anchored on the
        newest run's timestamp, including empty ones. No runs yields no
        periods.
    """

    if not runs or quantity <= 0:
        return ()

    if duration == Duration.per_run:
        return tuple(
            TrendPeriod(
                label=run_header(run),
                runs=(run,),
                start_date=run.timestamp,
                end_date=run.timestamp,
            )
            for run in runs[:quantity]
        )

    reference = runs[0].timestamp
    periods: list[TrendPeriod] = []
    for offset in range(quantity):
        start, end, label = calendar_period_bounds(reference, duration, offset)
        period_runs = tuple(run for run in runs if start <= run.timestamp <= end)
        periods.append(TrendPeriod(label=label, runs=period_runs, start_date=start, end_date=end))
    return tuple(periods)


def analyze_trend_type(values: Sequence[float]) -> TrendType:
    """Classify the shape of a series from its consecutive deltas.

    Series shorter than 3 values are stable. Otherwise at least 70% positive
    deltas is upward, 70% negative is downward, and 70% zero is stable; sign
    reversals numbering at least half the deltas make it volatile, anything
    else is linear.
    """

    if len(values) < 3:
        return TrendType.stable

    deltas = [current - previous for previous, current in zip(values, values[1:])]
    count = len(deltas)
    positive = sum(1 for d in deltas if d > 0)
    negative = sum(1 for d in deltas if d < 0)
    unchanged = sum(1 for d in deltas if d == 0)

    if positive >= count * _DOMINANT_SHARE:
        return TrendType.upward
    if negative >= count * _DOMINANT_SHARE:
        return TrendType.downward
    if unchanged >= count * _DOMINANT_SHARE:
        return TrendType.stable

    reversals = sum(
        1
        for previous, current in zip(deltas, deltas[1:])
        if (current > 0 and previous < 0) or (current < 0 and previous > 0)
    )
    if reversals >= count * _VOLATILE_SHARE:
        return TrendType.volatile
    return TrendType.linear


def calculate_field_trend(
    periods: Sequence[TrendPeriod],
    field_name: str,
    threshold_percent: float,
    aggregation: TrendsAggregation | None = None,
) -> FieldTrendData:
    """Compute one field's trend across newest-first periods.

    Values are reported oldest to newest; a period without the field
    contributes 0. The display name and data type come from the first
    (oldest) period whose first run holds the field.
    """

    values: list[float] = []
    display_name: str | None = None
    data_type = FieldDataType.number

    for period in reversed(periods):
        aggregated = aggregate_period_values(period.runs, (field_name,), aggregation)
        values.append(aggregated.get(field_name, 0.0))

        if display_name is None and period.runs:
            field = period.runs[0].fields.get(field_name)
            if field is not None:
                display_name = field.original_key or field_name
                data_type = field.data_type

    change = series_delta(values)
    return FieldTrendData(
        field_name=field_name,
        display_name=display_name or field_name,
        data_type=data_type,
        values=tuple(values),
        change=change,
        trend_type=analyze_trend_type(values),
        significance=significance(change.percent, threshold_percent),
    )


def _empty_trends(tier: int, periods: Sequence[TrendPeriod]) -> TierTrendsData:
    return TierTrendsData(
        tier=tier,
        period_count=len(periods),
        period_labels=tuple(period.label for period in periods),
        comparison_columns=(),
        field_trends=(),
        summary=TierTrendsSummary(total_fields=0, fields_changed=0),
    )


def calculate_tier_trends(
    runs: Iterable[Run],
    filters: TierTrendsFilters,
    run_type: RunTypeFilter = RunType.farm,
) -> TierTrendsData:
    """Compute field trends for a tier over the most recent periods.

    Args:
        runs: Candidate runs.
        filters: Tier, duration, quantity, aggregation and change threshold.
        run_type: Run type filter (`all` or a run type).

    Returns:
        TierTrendsData with columns ordered newest first and field trends
        sorted by absolute percent change. Fewer than 2 periods yields an
        empty result.
    """

    tier_runs = sorted(
        (
            run
            for run in filter_runs(runs, run_type=run_type)
            if filters.tier == 0 or run.tier == filters.tier
        ),
        key=lambda run: run.timestamp,
        reverse=True,
    )
    periods = build_trend_periods(tier_runs, filters.duration, filters.quantity)
    if len(periods) < 2:
        logger.debug(
            "Tier trends for tier %s skipped: %d periods available.", filters.tier, len(periods)
        )
        return _empty_trends(filters.tier, periods)

    aggregation = filters.aggregation_type or default_aggregation(filters.duration)
    field_names = trendable_fields(periods)

    columns: list[ComparisonColumn] = []
    for period in periods:
        sub_header = period.sub_label
        if aggregation == TrendsAggregation.hourly and filters.duration != Duration.per_run:
            sub_header = format_hours_subheader(total_duration_hours(period.runs))
        columns.append(
            ComparisonColumn(
                header=period.label,
                sub_header=sub_header,
                values=aggregate_period_values(period.runs, field_names, aggregation),
            )
        )

    threshold = filters.change_threshold_percent
    trends = [
        calculate_field_trend(periods, field_name, threshold, aggregation)
        for field_name in field_names
    ]
    if threshold != 0:
        trends = [trend for trend in trends if abs(trend.change.percent) >= threshold]

    fields_changed = sum(1 for trend in trends if abs(trend.change.percent) >= (threshold or 1))
    top_gainers = sorted(
        (trend for trend in trends if trend.change.direction == TrendDirection.up),
        key=lambda trend: trend.change.percent,
        reverse=True,
    )[:_TOP_MOVERS]
    top_decliners = sorted(
        (trend for trend in trends if trend.change.direction == TrendDirection.down),
        key=lambda trend: trend.change.percent,
    )[:_TOP_MOVERS]

    return TierTrendsData(
        tier=filters.tier,
        period_count=len(periods),
        period_labels=tuple(period.label for period in periods),
        comparison_columns=tuple(columns),
        field_trends=tuple(
            sorted(trends, key=lambda trend: abs(trend.change.percent), reverse=True)
        ),
        summary=TierTrendsSummary(
            total_fields=len(field_names),
            fields_changed=fields_changed,
            top_gainers=tuple(top_gainers),
            top_decliners=tuple(top_decliners),
        ),
    )


def available_tiers_for_trends(
    runs: Iterable[Run],
    run_type: RunTypeFilter = RunType.farm,
) -> list[int]:
    """Return tiers with at least 2 runs of the run type, highest first."""

    counts: dict[int, int] = {}
    for run in filter_runs(runs, run_type=run_type):
        if run.tier is None:
            continue
        counts[run.tier] = counts.get(run.tier, 0) + 1
    return sorted((tier for tier, count in counts.items() if count >= 2), reverse=True)
