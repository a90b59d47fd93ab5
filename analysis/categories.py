"""Shared enum definitions for the analytics engine.

Enum values are stable identifiers shared by the engine, the JSON payloads and
the query-string filters accepted by the Django views.
"""

from __future__ import annotations

from enum import StrEnum


class RunType(StrEnum):
    """Classification of a recorded run."""

    farm = "farm"
    tournament = "tournament"
    milestone = "milestone"


class Duration(StrEnum):
    """Time bucket used to group runs into periods."""

    per_run = "per-run"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class FieldDataType(StrEnum):
    """Typed representation of a run field value."""

    number = "number"
    duration = "duration"
    string = "string"
    date = "date"


class DiscrepancyType(StrEnum):
    """Direction of a gap between an aggregate total and its summed sources."""

    unknown = "unknown"
    overage = "overage"


class TierStatsAggregation(StrEnum):
    """Aggregation displayed in a tier stats cell."""

    max = "max"
    p99 = "p99"
    p90 = "p90"
    p75 = "p75"
    p50 = "p50"


class TrendsAggregation(StrEnum):
    """Strategy used to collapse a period's runs into a single trend value."""

    sum = "sum"
    average = "average"
    min = "min"
    max = "max"
    hourly = "hourly"


class TrendDirection(StrEnum):
    """First-vs-last direction of a trend."""

    up = "up"
    down = "down"
    stable = "stable"


class TrendType(StrEnum):
    """Shape classification of a value series."""

    upward = "upward"
    downward = "downward"
    stable = "stable"
    volatile = "volatile"
    linear = "linear"


class TrendSignificance(StrEnum):
    """Significance bucket of a trend relative to the change threshold."""

    high = "high"
    medium = "medium"
    low = "low"


class CoverageCategory(StrEnum):
    """Grouping of coverage metrics."""

    economic = "economic"
    combat = "combat"
