"""Reconciliation of aggregate totals against their summed sources.

A category's total field is authoritative. When tracked sources sum to less
than the total the gap is reported as `unknown`; when they sum to more it is
reported as `overage`. Gaps within the threshold are not reported.
"""

from __future__ import annotations

from typing import Final

from .categories import DiscrepancyType
from .dto import Discrepancy, SourceValue
from .rates import calculate_percentage

DISCREPANCY_THRESHOLD: Final[float] = 0.01

UNKNOWN_FIELD_NAME: Final[str] = "_unknown"
OVERAGE_FIELD_NAME: Final[str] = "_overage"

DISCREPANCY_DISPLAY: Final[dict[DiscrepancyType, tuple[str, str, str]]] = {
    DiscrepancyType.unknown: (UNKNOWN_FIELD_NAME, "Unknown", "#6b7280"),
    DiscrepancyType.overage: (OVERAGE_FIELD_NAME, "Overage", "#fbbf24"),
}


def calculate_discrepancy(
    total: float,
    source_sum: float,
    threshold: float = DISCREPANCY_THRESHOLD,
) -> Discrepancy | None:
    """Compare an aggregate total to the sum of its sources.

    Args:
        total: Authoritative aggregate total.
        source_sum: Sum of the tracked source values.
        threshold: Relative gap (fraction of `total`) that must be strictly
            exceeded before a discrepancy is reported.

    Returns:
        Discrepancy, or None when both values are 0, they are equal, or the
        gap is within the threshold. A zero total with positive sources is a
        100% overage.
    """

    if total == 0 and source_sum == 0:
        return None
    if total == source_sum:
        return None

    if total == 0:
        return Discrepancy(type=DiscrepancyType.overage, value=source_sum, percentage=100.0)

    gap = total - source_sum
    if abs(gap) / total <= threshold:
        return None

    if gap > 0:
        return Discrepancy(
            type=DiscrepancyType.unknown,
            value=gap,
            percentage=calculate_percentage(gap, total),
        )
    return Discrepancy(
        type=DiscrepancyType.overage,
        value=-gap,
        percentage=calculate_percentage(-gap, total),
    )


def discrepancy_source_value(discrepancy: Discrepancy) -> SourceValue:
    """Render a discrepancy as a pseudo-source entry for a period breakdown."""

    field_name, display_name, color = DISCREPANCY_DISPLAY[discrepancy.type]
    return SourceValue(
        field_name=field_name,
        display_name=display_name,
        color=color,
        value=discrepancy.value,
        percentage=discrepancy.percentage,
        is_discrepancy=True,
        discrepancy_type=discrepancy.type,
    )
