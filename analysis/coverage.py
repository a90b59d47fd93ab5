"""Coverage report: share of enemies affected by each mechanic.

Coverage of a metric is `affected / totalEnemies * 100` for a set of runs.
Runs without a positive `totalEnemies` cannot produce a meaningful share and
are excluded before grouping.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from types import MappingProxyType
from typing import Final

from .categories import CoverageCategory, Duration
from .dto import (
    CoverageAnalysisData,
    CoverageMetricDefinition,
    CoverageReportFilters,
    CoverageSummary,
    MetricCoverage,
    PeriodCoverageData,
    Run,
    RunInfo,
)
from .errors import UnknownMetricError
from .fields import extract_field_value
from .periods import period_label
from .rates import calculate_percentage
from .source_analysis import filter_runs, group_runs_by_period, limit_to_periods

logger = logging.getLogger(__name__)

TOTAL_ENEMIES_FIELD: Final[str] = "totalEnemies"

COVERAGE_METRICS: Final[tuple[CoverageMetricDefinition, ...]] = (
    CoverageMetricDefinition("taggedByDeathwave", "Death Wave", CoverageCategory.economic, "#ef4444"),
    CoverageMetricDefinition("destroyedInSpotlight", "Spotlight", CoverageCategory.economic, "#e2e8f0"),
    CoverageMetricDefinition("destroyedInGoldenBot", "Golden Bot", CoverageCategory.economic, "#fbbf24"),
    CoverageMetricDefinition("summonedEnemies", "Enemy Summoned", CoverageCategory.economic, "#3b82f6"),
    CoverageMetricDefinition("enemiesHitByOrbs", "Orb Hits", CoverageCategory.combat, "#f87171"),
    CoverageMetricDefinition("destroyedByOrbs", "Orbs", CoverageCategory.combat, "#fca5a5"),
    CoverageMetricDefinition("destroyedByDeathRay", "Death Ray", CoverageCategory.combat, "#ff5722"),
    CoverageMetricDefinition("destroyedByThorns", "Thorns", CoverageCategory.combat, "#22d3ee"),
    CoverageMetricDefinition("destroyedByLandMine", "Land Mine", CoverageCategory.combat, "#9333ea"),
)

_METRICS_BY_FIELD: Final = MappingProxyType({metric.field_name: metric for metric in COVERAGE_METRICS})


def get_metric(field_name: str) -> CoverageMetricDefinition:
    """Return a coverage metric definition.

    Raises:
        UnknownMetricError: When the field name is not a coverage metric.
    """

    try:
        return _METRICS_BY_FIELD[field_name]
    except KeyError:
        raise UnknownMetricError(field_name) from None


def metrics_by_category(category: CoverageCategory) -> tuple[CoverageMetricDefinition, ...]:
    """Return the metrics of a category in display order."""

    return tuple(metric for metric in COVERAGE_METRICS if metric.category == category)


def total_enemies(run: Run) -> float:
    """Return the number of enemies a run destroyed (0 when unknown)."""

    return extract_field_value(run, TOTAL_ENEMIES_FIELD)


def has_valid_coverage_data(run: Run) -> bool:
    """Return True when a run records a positive enemy total."""

    return total_enemies(run) > 0


def calculate_metric_coverage(
    runs: Sequence[Run],
    metric: CoverageMetricDefinition,
) -> MetricCoverage:
    """Compute one metric's coverage across runs."""

    enemies = sum(total_enemies(run) for run in runs)
    affected = sum(extract_field_value(run, metric.field_name) for run in runs)
    return MetricCoverage(
        field_name=metric.field_name,
        label=metric.label,
        color=metric.color,
        percentage=calculate_percentage(affected, enemies),
        affected_count=affected,
        total_enemies=enemies,
    )


def sort_metrics_by_percentage(metrics: Iterable[MetricCoverage]) -> list[MetricCoverage]:
    """Return metrics by coverage descending, ties by affected count descending."""

    return sorted(
        metrics,
        key=lambda metric: (metric.percentage, metric.affected_count),
        reverse=True,
    )


def filter_non_zero_coverage(metrics: Iterable[MetricCoverage]) -> tuple[MetricCoverage, ...]:
    """Drop metrics with zero coverage."""

    return tuple(metric for metric in metrics if metric.percentage > 0)


def calculate_period_coverage(
    runs: Sequence[Run],
    selected_metrics: Sequence[str],
    *,
    period_key: str,
    period_label: str,
    is_per_run_period: bool = False,
) -> PeriodCoverageData:
    """Compute every selected metric's coverage for one period.

    Raises:
        UnknownMetricError: When a selected metric is not configured.
    """

    metrics = tuple(calculate_metric_coverage(runs, get_metric(name)) for name in selected_metrics)
    run_info = None
    if is_per_run_period and len(runs) == 1:
        run = runs[0]
        run_info = RunInfo(
            tier=run.tier, wave=run.wave, real_time=run.real_time, timestamp=run.timestamp
        )
    return PeriodCoverageData(
        period_key=period_key,
        period_label=period_label,
        metrics=metrics,
        total_enemies=sum(total_enemies(run) for run in runs),
        run_count=len(runs),
        run_info=run_info,
    )


def calculate_coverage_summary(
    periods: Sequence[PeriodCoverageData],
    selected_metrics: Sequence[str],
) -> CoverageSummary:
    """Roll period coverage up into totals, keeping the selected metric order."""

    enemies = sum(period.total_enemies for period in periods)
    affected_totals = {name: 0.0 for name in selected_metrics}
    for period in periods:
        for metric in period.metrics:
            affected_totals[metric.field_name] = (
                affected_totals.get(metric.field_name, 0.0) + metric.affected_count
            )

    metrics: list[MetricCoverage] = []
    for name in selected_metrics:
        definition = get_metric(name)
        affected = affected_totals[name]
        metrics.append(
            MetricCoverage(
                field_name=name,
                label=definition.label,
                color=definition.color,
                percentage=calculate_percentage(affected, enemies),
                affected_count=affected,
                total_enemies=enemies,
            )
        )

    return CoverageSummary(
        metrics=tuple(metrics),
        total_enemies=enemies,
        total_runs=sum(period.run_count for period in periods),
    )


def calculate_coverage_analysis(
    runs: Iterable[Run],
    filters: CoverageReportFilters,
) -> CoverageAnalysisData:
    """Run the coverage report pipeline.

    Runs without enemy totals are dropped, the rest filtered, sorted oldest
    first, grouped, limited to the most recent `filters.period_count` periods,
    and measured per period and overall.

    Raises:
        UnknownMetricError: When a selected metric is not configured.
    """

    for name in filters.selected_metrics:
        get_metric(name)

    valid = [run for run in runs if has_valid_coverage_data(run)]
    filtered = filter_runs(valid, run_type=filters.run_type, tier=filters.tier)
    ordered = sorted(filtered, key=lambda run: run.timestamp)
    groups = limit_to_periods(
        group_runs_by_period(ordered, filters.duration),
        filters.period_count,
        filters.duration,
    )

    is_per_run = filters.duration == Duration.per_run
    total_periods = len(groups)
    periods = tuple(
        calculate_period_coverage(
            period_runs,
            filters.selected_metrics,
            period_key=key,
            period_label=period_label(key, filters.duration, index, total_periods),
            is_per_run_period=is_per_run,
        )
        for index, (key, period_runs) in enumerate(groups.items())
    )
    logger.debug("Coverage report: %d runs with enemy totals, %d periods.", len(valid), len(periods))

    return CoverageAnalysisData(
        filters=filters,
        periods=periods,
        summary=calculate_coverage_summary(periods, filters.selected_metrics),
    )
