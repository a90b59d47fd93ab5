"""DTO types consumed and returned by the analytics engine.

DTOs are plain data containers used to transport runs into the engine and
analysis results out to the presentation layer. They intentionally avoid any
Django/ORM dependencies.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

from .categories import (
    CoverageCategory,
    DiscrepancyType,
    Duration,
    FieldDataType,
    RunType,
    TrendDirection,
    TrendSignificance,
    TrendsAggregation,
    TrendType,
)

RunTypeFilter = RunType | Literal["all"]
TierFilter = int | Literal["all"]


@dataclass(frozen=True, slots=True)
class RunField:
    """A single typed field recorded for a run.

    Attributes:
        value: Parsed value (number of any magnitude, seconds for durations,
            datetime for dates, or text).
        raw_value: The raw string as imported.
        display_value: Human-friendly rendering of the value.
        original_key: Label as it appeared in the imported report.
        data_type: Type of `value`.
    """

    value: float | int | str | datetime
    raw_value: str
    display_value: str
    original_key: str
    data_type: FieldDataType


@dataclass(frozen=True)
class Run:
    """One completed game session.

    Attributes:
        run_id: Stable unique identifier.
        timestamp: Battle timestamp; immutable once the run is created.
        tier: Positive tier number, or None when unknown.
        run_type: Farm, tournament or milestone run.
        real_time: Real-time duration in seconds.
        fields: Mapping of camelCase field name to typed field.
        wave: Final wave reached, when known.
    """

    run_id: str
    timestamp: datetime
    tier: int | None
    run_type: RunType
    real_time: int
    fields: Mapping[str, RunField] = field(default_factory=dict)
    wave: int | None = None


@dataclass(frozen=True, slots=True)
class RunInfo:
    """Run metadata attached to single-run periods for tooltips."""

    tier: int | None
    wave: int | None
    real_time: int
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class SourceFieldDefinition:
    """A source field contributing to a category total.

    Attributes:
        field_name: camelCase field name in `Run.fields`.
        display_name: Human-readable name.
        color: Chart color (hex).
        aliases: Historical field names tried when `field_name` is missing.
    """

    field_name: str
    display_name: str
    color: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CategoryDefinition:
    """An aggregate metric decomposed into its sources.

    Attributes:
        id: Stable category id.
        name: Display name.
        description: Short description of the category.
        total_field: Field holding the authoritative aggregate total.
        sources: Ordered source definitions expected to sum to the total.
        per_hour_field: Optional field holding the per-hour aggregate.
    """

    id: str
    name: str
    description: str
    total_field: str
    sources: tuple[SourceFieldDefinition, ...]
    per_hour_field: str | None = None


@dataclass(frozen=True, slots=True)
class SourceAnalysisFilters:
    """Filter configuration for source analysis."""

    category: str = "damageDealt"
    run_type: RunTypeFilter = RunType.tournament
    tier: TierFilter = "all"
    duration: Duration = Duration.per_run
    quantity: int = 10


@dataclass(frozen=True, slots=True)
class Discrepancy:
    """Gap between an authoritative total and the sum of its sources.

    Attributes:
        type: `unknown` when sources undercount, `overage` when they overcount.
        value: Absolute size of the gap.
        percentage: Gap as a percentage of the total (0-100, 2 decimals).
    """

    type: DiscrepancyType
    value: float
    percentage: float


@dataclass(frozen=True, slots=True)
class SourceValue:
    """Value of one source (or discrepancy pseudo-source) within a period."""

    field_name: str
    display_name: str
    color: str
    value: float
    percentage: float
    is_discrepancy: bool = False
    discrepancy_type: DiscrepancyType | None = None


@dataclass(frozen=True, slots=True)
class PeriodSourceBreakdown:
    """Source breakdown for a single period bucket."""

    period_label: str
    period_key: str
    total: float
    run_count: int
    sources: tuple[SourceValue, ...]
    run_info: RunInfo | None = None


@dataclass(frozen=True, slots=True)
class SourceSummaryValue:
    """Roll-up of one source across all analysed periods."""

    field_name: str
    display_name: str
    color: str
    total_value: float
    percentage: float
    is_discrepancy: bool = False
    discrepancy_type: DiscrepancyType | None = None


@dataclass(frozen=True, slots=True)
class SourceSummary:
    """Summary breakdown across all analysed periods."""

    total_value: float
    period_count: int
    sources: tuple[SourceSummaryValue, ...] = ()


@dataclass(frozen=True, slots=True)
class SourceAnalysisData:
    """Complete source analysis result; periods are ordered oldest first."""

    category: CategoryDefinition
    filters: SourceAnalysisFilters
    periods: tuple[PeriodSourceBreakdown, ...]
    summary: SourceSummary


@dataclass(frozen=True, slots=True)
class PercentileResult:
    """A percentile value together with the run that produced it.

    Attributes:
        value: Field value at the percentile rank.
        source_run: Run occupying the percentile rank.
        duration: `source_run.real_time`, used for per-percentile hourly rates.
    """

    value: float
    source_run: Run
    duration: int


@dataclass(frozen=True, slots=True)
class FieldPercentiles:
    """Nearest-rank percentiles; each entry is None when no values exist."""

    p99: PercentileResult | None = None
    p90: PercentileResult | None = None
    p75: PercentileResult | None = None
    p50: PercentileResult | None = None


@dataclass(frozen=True, slots=True)
class FieldStats:
    """Per-tier statistics for one field.

    Each percentile value is paired with the duration of the run that
    produced it, never with an averaged duration.
    """

    max_value: float
    max_value_run: Run
    p99_value: float | None
    p99_duration: int | None
    p90_value: float | None
    p90_duration: int | None
    p75_value: float | None
    p75_duration: int | None
    p50_value: float | None
    p50_duration: int | None
    longest_duration: int
    longest_duration_run: Run | None
    hourly_rate: float | None = None


@dataclass(frozen=True, slots=True)
class TierStatsColumnConfig:
    """A field selected for the tier stats table."""

    field_name: str
    show_hourly_rate: bool = False


@dataclass(frozen=True, slots=True)
class DynamicTierStats:
    """Statistics for every selected field within one tier."""

    tier: int
    run_count: int
    fields: Mapping[str, FieldStats]


@dataclass(frozen=True, slots=True)
class TierStatsSummary:
    """Totals across every tier in a tier stats table."""

    total_tiers: int
    total_runs: int
    highest_values: Mapping[str, float]


@dataclass(frozen=True, slots=True)
class TrendChange:
    """First-to-last change of a value series.

    Attributes:
        absolute: `last - first`.
        percent: Percent change relative to `|first|`; 100 when the series
            starts at 0 and ends positive.
        direction: `stable` inside the 0.1% dead zone, otherwise up/down.
    """

    absolute: float
    percent: float
    direction: TrendDirection


@dataclass(frozen=True, slots=True)
class FieldTrendData:
    """Trend of one field across the analysed window (oldest to newest)."""

    field_name: str
    display_name: str
    data_type: FieldDataType
    values: tuple[float, ...]
    change: TrendChange
    trend_type: TrendType
    significance: TrendSignificance


@dataclass(frozen=True, slots=True)
class TierTrendsFilters:
    """Filter configuration for tier trends.

    Attributes:
        tier: Tier to analyse; 0 means every tier.
        duration: Period size.
        quantity: Number of periods (or runs for per-run mode).
        aggregation_type: Strategy collapsing a period's runs into one value;
            None selects the default for the duration.
        change_threshold_percent: Minimum absolute percent change for a field
            to be reported; 0 reports every field.
    """

    tier: int = 0
    duration: Duration = Duration.per_run
    quantity: int = 5
    aggregation_type: TrendsAggregation | None = None
    change_threshold_percent: float = 0.0


@dataclass(frozen=True, slots=True)
class TrendPeriod:
    """A trend window period and the runs it contains."""

    label: str
    runs: tuple[Run, ...]
    start_date: datetime
    end_date: datetime
    sub_label: str | None = None


@dataclass(frozen=True, slots=True)
class ComparisonColumn:
    """Aggregated field values for one period column."""

    header: str
    values: Mapping[str, float]
    sub_header: str | None = None


@dataclass(frozen=True, slots=True)
class TierTrendsSummary:
    """Headline figures for a tier trends result."""

    total_fields: int
    fields_changed: int
    top_gainers: tuple[FieldTrendData, ...] = ()
    top_decliners: tuple[FieldTrendData, ...] = ()


@dataclass(frozen=True, slots=True)
class TierTrendsData:
    """Complete tier trends result; periods are ordered newest first."""

    tier: int
    period_count: int
    period_labels: tuple[str, ...]
    comparison_columns: tuple[ComparisonColumn, ...]
    field_trends: tuple[FieldTrendData, ...]
    summary: TierTrendsSummary


@dataclass(frozen=True, slots=True)
class CoverageMetricDefinition:
    """A coverage metric: enemies affected by one mechanic."""

    field_name: str
    label: str
    category: CoverageCategory
    color: str


@dataclass(frozen=True, slots=True)
class CoverageReportFilters:
    """Filter configuration for the coverage report."""

    selected_metrics: tuple[str, ...] = (
        "taggedByDeathwave",
        "destroyedInSpotlight",
        "destroyedInGoldenBot",
    )
    run_type: RunTypeFilter = RunType.farm
    tier: TierFilter = "all"
    duration: Duration = Duration.daily
    period_count: int = 14


@dataclass(frozen=True, slots=True)
class MetricCoverage:
    """Coverage of one metric (0-100) for a set of runs."""

    field_name: str
    label: str
    color: str
    percentage: float
    affected_count: float
    total_enemies: float


@dataclass(frozen=True, slots=True)
class PeriodCoverageData:
    """Coverage metrics for one period bucket."""

    period_key: str
    period_label: str
    metrics: tuple[MetricCoverage, ...]
    total_enemies: float
    run_count: int
    run_info: RunInfo | None = None


@dataclass(frozen=True, slots=True)
class CoverageSummary:
    """Coverage across all analysed periods."""

    metrics: tuple[MetricCoverage, ...]
    total_enemies: float
    total_runs: int


@dataclass(frozen=True, slots=True)
class CoverageAnalysisData:
    """Complete coverage analysis result; periods are ordered oldest first."""

    filters: CoverageReportFilters
    periods: tuple[PeriodCoverageData, ...]
    summary: CoverageSummary


@dataclass(frozen=True, slots=True)
class AvailableField:
    """A run field that can be selected as a tier stats column."""

    field_name: str
    display_name: str
    data_type: FieldDataType
    is_numeric: bool
    can_have_hourly_rate: bool


@dataclass(frozen=True, slots=True)
class TimeSeriesFilters:
    """Filter configuration for a single-field time series.

    Attributes:
        field_name: Field to chart.
        run_type: `all` or a run type.
        tier: `all` or a tier.
        duration: per-run points or calendar buckets.
        per_hour: Chart the value per hour of real time instead of the raw
            value (calendar buckets divide by their combined hours).
        quantity: Keep only the most recent points; None keeps all.
        moving_average_window: Points per moving average window; None
            disables the overlay.
        include_percent_change: Attach the change from the previous point.
    """

    field_name: str = "coinsEarned"
    run_type: RunTypeFilter = "all"
    tier: TierFilter = "all"
    duration: Duration = Duration.per_run
    per_hour: bool = False
    quantity: int | None = None
    moving_average_window: int | None = None
    include_percent_change: bool = False


@dataclass(frozen=True, slots=True)
class TimeSeriesPoint:
    """One point of a time series.

    Attributes:
        period_key: Period key of the point.
        label: Axis label.
        timestamp: Run timestamp, or the start of the calendar bucket.
        value: Field value (or hourly rate) for the point.
        run_count: Runs behind the point.
        run_info: Run metadata for per-run points.
        daily_average: Weekly/monthly totals spread over their days.
        days_in_period: Days `daily_average` divides by; the current period
            only counts the days elapsed so far.
        moving_average: Average of the trailing window ending here, or None
            before the window fills.
        percent_change: Change from the previous point in percent.
    """

    period_key: str
    label: str
    timestamp: datetime
    value: float
    run_count: int
    run_info: RunInfo | None = None
    daily_average: float | None = None
    days_in_period: int | None = None
    moving_average: float | None = None
    percent_change: float | None = None


@dataclass(frozen=True, slots=True)
class TimeSeriesData:
    """A complete time series; points are ordered oldest first."""

    filters: TimeSeriesFilters
    points: tuple[TimeSeriesPoint, ...]


@dataclass(frozen=True, slots=True)
class ActiveHours:
    """Daily play window, `start_hour` inclusive to `end_hour` exclusive.

    A start after the end wraps past midnight (22-6); equal hours cover the
    whole day.
    """

    start_hour: int
    end_hour: int


@dataclass(frozen=True, slots=True)
class HeatmapSegment:
    """The part of an hour cell occupied by one run, as fractions of the hour."""

    start_fraction: float
    end_fraction: float
    run_type: RunType
    tier: int | None
    run_id: str


@dataclass(frozen=True, slots=True)
class HeatmapCell:
    """One hour of one day in the activity grid."""

    day_index: int
    hour: int
    day: date
    segments: tuple[HeatmapSegment, ...]
    total_coverage: float


@dataclass(frozen=True, slots=True)
class HeatmapGrid:
    """A 7x24 activity grid for one Sunday-based week.

    Attributes:
        week_start: Sunday 00:00 UTC.
        week_end: The following Sunday 00:00 UTC (exclusive).
        week_label: `Week of M/D`.
        days: Seven rows (Sunday first) of 24 hour cells.
    """

    week_start: datetime
    week_end: datetime
    week_label: str
    days: tuple[tuple[HeatmapCell, ...], ...]


@dataclass(frozen=True, slots=True)
class RunTypeActivity:
    """Activity of one run type within a heatmap week."""

    coverage: float
    active_seconds: float
    run_count: int


@dataclass(frozen=True, slots=True)
class HeatmapSummary:
    """Summary statistics of a heatmap grid; coverages are fractions (0-1)."""

    overall_coverage: float
    daily_coverage: tuple[float, ...]
    active_hours_coverage: float
    run_type_breakdown: Mapping[str, float]
    run_type_activity: Mapping[str, RunTypeActivity]
    total_active_seconds: float
    total_idle_seconds: float
    run_count: int


@dataclass(frozen=True, slots=True)
class KilledByStat:
    """How often one cause ended runs of a tier."""

    killed_by: str
    count: int
    percentage: float


@dataclass(frozen=True, slots=True)
class TierKilledByData:
    """Death causes of one tier, most frequent first."""

    tier: int
    total_deaths: int
    stats: tuple[KilledByStat, ...]


@dataclass(frozen=True, slots=True)
class KilledByRadarRow:
    """One death cause with its percentage per tier (0 where it never occurred)."""

    killed_by: str
    percentages: Mapping[int, float]
