"""Source analysis: period grouping and breakdown of aggregate metrics.

Runs are filtered, bucketed by period, and each bucket's category total is
broken down into its source fields. Gaps between the authoritative total and
the summed sources surface as discrepancy pseudo-sources.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Final

from .categories import DiscrepancyType, Duration
from .discrepancy import (
    DISCREPANCY_DISPLAY,
    DISCREPANCY_THRESHOLD,
    calculate_discrepancy,
    discrepancy_source_value,
)
from .dto import (
    CategoryDefinition,
    PeriodSourceBreakdown,
    Run,
    RunInfo,
    RunTypeFilter,
    SourceAnalysisData,
    SourceAnalysisFilters,
    SourceFieldDefinition,
    SourceSummary,
    SourceSummaryValue,
    SourceValue,
    TierFilter,
)
from .fields import extract_field_value
from .periods import period_key, period_label, period_sort_value
from .rates import calculate_percentage
from .source_config import build_field_alias_map

logger = logging.getLogger(__name__)

_QUANTITY_UNITS: Final[dict[Duration, tuple[str, str]]] = {
    Duration.per_run: ("run", "runs"),
    Duration.daily: ("day", "days"),
    Duration.weekly: ("week", "weeks"),
    Duration.monthly: ("month", "months"),
    Duration.yearly: ("year", "years"),
}


def quantity_label(duration: Duration, quantity: int) -> str:
    """Return a label such as `Last 10 runs` or `Last 1 week`."""

    singular, plural = _QUANTITY_UNITS[duration]
    return f"Last {quantity} {singular if quantity == 1 else plural}"


def _category_value(run: Run, field_name: str, category: CategoryDefinition) -> float:
    return extract_field_value(run, field_name, aliases=build_field_alias_map(category.sources))


def sum_source_values(run: Run, sources: Sequence[SourceFieldDefinition]) -> float:
    """Sum every source field of a run (missing fields count as 0)."""

    aliases = build_field_alias_map(sources)
    return sum(extract_field_value(run, source.field_name, aliases=aliases) for source in sources)


def calculate_run_total(run: Run, category: CategoryDefinition) -> float:
    """Return a run's category total.

    The total field wins when it is positive; otherwise the sources are summed.
    """

    total = extract_field_value(run, category.total_field)
    if total > 0:
        return total
    return sum_source_values(run, category.sources)


def extract_source_values(run: Run, category: CategoryDefinition) -> tuple[SourceValue, ...]:
    """Return each source's value and share of a single run's category total."""

    total = calculate_run_total(run, category)
    values: list[SourceValue] = []
    for source in category.sources:
        value = _category_value(run, source.field_name, category)
        values.append(
            SourceValue(
                field_name=source.field_name,
                display_name=source.display_name,
                color=source.color,
                value=value,
                percentage=calculate_percentage(value, total),
            )
        )
    return tuple(values)


def has_source_data(run: Run, category: CategoryDefinition) -> bool:
    """Return True when a run has a positive total or any positive source."""

    if extract_field_value(run, category.total_field) > 0:
        return True
    return any(_category_value(run, source.field_name, category) > 0 for source in category.sources)


def filter_non_zero_sources(sources: Iterable[SourceValue]) -> tuple[SourceValue, ...]:
    """Drop sources whose value is not positive."""

    return tuple(source for source in sources if source.value > 0)


def sort_sources_by_value(sources: Iterable[SourceValue]) -> list[SourceValue]:
    """Return sources sorted by value, largest first (input untouched)."""

    return sorted(sources, key=lambda source: source.value, reverse=True)


def sort_source_summary_by_percentage(
    sources: Iterable[SourceSummaryValue],
) -> list[SourceSummaryValue]:
    """Return summary values sorted by percentage, ties broken by total value.

    Both keys sort descending; the input is not mutated.
    """

    return sorted(
        sources,
        key=lambda source: (source.percentage, source.total_value),
        reverse=True,
    )


def filter_runs(
    runs: Iterable[Run],
    *,
    run_type: RunTypeFilter = "all",
    tier: TierFilter = "all",
) -> tuple[Run, ...]:
    """Keep runs matching both the run type and the tier filter.

    Args:
        runs: Runs to filter.
        run_type: `all` or an exact run type.
        tier: `all` or an exact tier.

    Returns:
        Matching runs in input order.
    """

    filtered: list[Run] = []
    for run in runs:
        if run_type != "all" and run.run_type != run_type:
            continue
        if tier != "all" and run.tier != tier:
            continue
        filtered.append(run)
    return tuple(filtered)


def group_runs_by_period(runs: Iterable[Run], duration: Duration) -> dict[str, list[Run]]:
    """Bucket runs by period key, preserving encounter order within buckets."""

    groups: dict[str, list[Run]] = {}
    for run in runs:
        groups.setdefault(period_key(run.timestamp, duration), []).append(run)
    return groups


def limit_to_periods(
    groups: Mapping[str, Sequence[Run]],
    quantity: int,
    duration: Duration,
) -> dict[str, list[Run]]:
    """Keep the `quantity` most recent buckets, ordered oldest first.

    Per-run keys are compared as timestamps; calendar keys are zero-padded and
    compared lexicographically.
    """

    if quantity <= 0:
        return {}
    newest_first = sorted(groups, key=lambda key: period_sort_value(key, duration), reverse=True)
    kept = newest_first[:quantity]
    return {key: list(groups[key]) for key in reversed(kept)}


def _run_info(run: Run) -> RunInfo:
    return RunInfo(tier=run.tier, wave=run.wave, real_time=run.real_time, timestamp=run.timestamp)


def calculate_period_breakdown(
    runs: Sequence[Run],
    category: CategoryDefinition,
    *,
    period_key: str,
    period_label: str,
    is_per_run_period: bool = False,
    discrepancy_threshold: float = DISCREPANCY_THRESHOLD,
) -> PeriodSourceBreakdown:
    """Break one period's category total down into its sources.

    Args:
        runs: Runs in the period.
        category: Category to break down.
        period_key: Key of the period.
        period_label: Display label of the period.
        is_per_run_period: True when periods are individual runs; a period
            holding exactly one run then carries its RunInfo.
        discrepancy_threshold: Relative gap that must be exceeded before a
            discrepancy entry is added.

    Returns:
        PeriodSourceBreakdown whose total is the summed total field when
        positive, otherwise the summed sources.
    """

    aliases = build_field_alias_map(category.sources)
    source_totals = {source.field_name: 0.0 for source in category.sources}
    aggregated_total = 0.0
    for run in runs:
        aggregated_total += extract_field_value(run, category.total_field)
        for source in category.sources:
            source_totals[source.field_name] += extract_field_value(
                run, source.field_name, aliases=aliases
            )

    source_sum = sum(source_totals.values())
    period_total = aggregated_total if aggregated_total > 0 else source_sum

    sources: list[SourceValue] = [
        SourceValue(
            field_name=source.field_name,
            display_name=source.display_name,
            color=source.color,
            value=source_totals[source.field_name],
            percentage=calculate_percentage(source_totals[source.field_name], period_total),
        )
        for source in category.sources
    ]

    if aggregated_total > 0:
        discrepancy = calculate_discrepancy(
            aggregated_total, source_sum, threshold=discrepancy_threshold
        )
        if discrepancy is not None:
            sources.append(discrepancy_source_value(discrepancy))

    run_info = _run_info(runs[0]) if is_per_run_period and len(runs) == 1 else None

    return PeriodSourceBreakdown(
        period_label=period_label,
        period_key=period_key,
        total=period_total,
        run_count=len(runs),
        sources=tuple(sources),
        run_info=run_info,
    )


def calculate_summary(
    periods: Sequence[PeriodSourceBreakdown],
    category: CategoryDefinition,
) -> SourceSummary:
    """Roll period breakdowns up into a summary.

    Source values and discrepancy values are accumulated independently; every
    share is taken against the sum of the period totals. Zero-valued entries
    are dropped and the rest sorted by percentage (ties by total value).
    """

    source_totals = {source.field_name: 0.0 for source in category.sources}
    discrepancy_totals = {discrepancy_type: 0.0 for discrepancy_type in DiscrepancyType}
    grand_total = 0.0

    for period in periods:
        grand_total += period.total
        for source in period.sources:
            if source.is_discrepancy and source.discrepancy_type is not None:
                discrepancy_totals[source.discrepancy_type] += source.value
            elif source.field_name in source_totals:
                source_totals[source.field_name] += source.value

    values: list[SourceSummaryValue] = [
        SourceSummaryValue(
            field_name=source.field_name,
            display_name=source.display_name,
            color=source.color,
            total_value=source_totals[source.field_name],
            percentage=calculate_percentage(source_totals[source.field_name], grand_total),
        )
        for source in category.sources
    ]
    for discrepancy_type, total_value in discrepancy_totals.items():
        field_name, display_name, color = DISCREPANCY_DISPLAY[discrepancy_type]
        values.append(
            SourceSummaryValue(
                field_name=field_name,
                display_name=display_name,
                color=color,
                total_value=total_value,
                percentage=calculate_percentage(total_value, grand_total),
                is_discrepancy=True,
                discrepancy_type=discrepancy_type,
            )
        )

    non_zero = [value for value in values if value.total_value > 0]
    return SourceSummary(
        total_value=grand_total,
        period_count=len(periods),
        sources=tuple(sort_source_summary_by_percentage(non_zero)),
    )


def calculate_source_analysis(
    runs: Iterable[Run],
    category: CategoryDefinition,
    filters: SourceAnalysisFilters,
    *,
    discrepancy_threshold: float = DISCREPANCY_THRESHOLD,
) -> SourceAnalysisData:
    """Run the full source analysis pipeline.

    Runs are filtered, sorted oldest first, grouped by period, limited to the
    most recent `filters.quantity` periods, broken down, and summarized.

    Args:
        runs: Candidate runs.
        category: Category to break down.
        filters: Run type, tier, duration and quantity filters.
        discrepancy_threshold: Relative gap that must be exceeded before a
            discrepancy entry is added.

    Returns:
        SourceAnalysisData with periods ordered oldest first. Empty input
        yields no periods and a zero summary.
    """

    filtered = filter_runs(runs, run_type=filters.run_type, tier=filters.tier)
    ordered = sorted(filtered, key=lambda run: run.timestamp)
    groups = limit_to_periods(
        group_runs_by_period(ordered, filters.duration),
        filters.quantity,
        filters.duration,
    )

    is_per_run = filters.duration == Duration.per_run
    total_periods = len(groups)
    periods = tuple(
        calculate_period_breakdown(
            period_runs,
            category,
            period_key=key,
            period_label=period_label(key, filters.duration, index, total_periods),
            is_per_run_period=is_per_run,
            discrepancy_threshold=discrepancy_threshold,
        )
        for index, (key, period_runs) in enumerate(groups.items())
    )
    logger.debug(
        "Source analysis for %s: %d runs matched filters, %d periods kept.",
        category.id,
        len(filtered),
        len(periods),
    )

    return SourceAnalysisData(
        category=category,
        filters=filters,
        periods=periods,
        summary=calculate_summary(periods, category),
    )
