"""Pure analysis package for towerAnalytics.

This package contains deterministic, testable computations that operate on
in-memory inputs and return DTOs. It must not import Django or perform any
database I/O.
"""

from .coverage import calculate_coverage_analysis
from .deaths import calculate_killed_by
from .engine import runs_from_records
from .heatmap import summarize_week
from .source_analysis import calculate_source_analysis
from .tier_stats import calculate_dynamic_tier_stats
from .tier_trends import calculate_tier_trends
from .time_series import calculate_time_series

__all__ = [
    "calculate_coverage_analysis",
    "calculate_dynamic_tier_stats",
    "calculate_killed_by",
    "calculate_source_analysis",
    "calculate_tier_trends",
    "calculate_time_series",
    "runs_from_records",
    "summarize_week",
]
