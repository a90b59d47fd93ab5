"""Weekly activity heatmap: when runs were being played, hour by hour.

A run occupies the span ending at its timestamp and lasting its real time.
Each span is clipped to a Sunday-based UTC week and split across the hour
cells it touches as fractional segments; a cell's coverage is the sum of its
segments, capped at 1.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Final

from .dto import (
    ActiveHours,
    HeatmapCell,
    HeatmapGrid,
    HeatmapSegment,
    HeatmapSummary,
    Run,
    RunTypeActivity,
)
from .periods import week_start

logger = logging.getLogger(__name__)

HOURS_PER_DAY: Final[int] = 24
DAYS_PER_WEEK: Final[int] = 7
TOTAL_CELLS: Final[int] = HOURS_PER_DAY * DAYS_PER_WEEK
SECONDS_PER_HOUR: Final[int] = 3600

_ONE_HOUR: Final[timedelta] = timedelta(hours=1)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def heatmap_week_start(timestamp: datetime) -> datetime:
    """Return Sunday 00:00 UTC of the week holding `timestamp`."""

    return week_start(_as_utc(timestamp))


def run_time_range(run: Run) -> tuple[datetime, datetime]:
    """Return the (start, end) span of a run in UTC."""

    end = _as_utc(run.timestamp)
    return end - timedelta(seconds=run.real_time), end


def clip_to_week(
    start: datetime,
    end: datetime,
    week_begin: datetime,
    week_end: datetime,
) -> tuple[datetime, datetime] | None:
    """Clip a span to `[week_begin, week_end)`, or None when they do not overlap."""

    if end <= week_begin or start >= week_end:
        return None
    return max(start, week_begin), min(end, week_end)


def distribute_to_hours(
    start: datetime,
    end: datetime,
    run: Run,
) -> list[tuple[int, int, HeatmapSegment]]:
    """Split a clipped span into per-hour segments.

    Returns:
        (day_index, hour, segment) entries where day 0 is Sunday. A run from
        14:30 to 16:15 yields 14h [0.5, 1.0], 15h [0, 1.0] and 16h [0, 0.25].
    """

    entries: list[tuple[int, int, HeatmapSegment]] = []
    cursor = start.replace(minute=0, second=0, microsecond=0)
    while cursor < end:
        hour_end = cursor + _ONE_HOUR
        overlap_start = max(start, cursor)
        overlap_end = min(end, hour_end)
        if overlap_end > overlap_start:
            entries.append(
                (
                    (cursor.weekday() + 1) % DAYS_PER_WEEK,
                    cursor.hour,
                    HeatmapSegment(
                        start_fraction=(overlap_start - cursor) / _ONE_HOUR,
                        end_fraction=(overlap_end - cursor) / _ONE_HOUR,
                        run_type=run.run_type,
                        tier=run.tier,
                        run_id=run.run_id,
                    ),
                )
            )
        cursor = hour_end
    return entries


def cell_coverage(segments: Iterable[HeatmapSegment]) -> float:
    """Return the occupied fraction of an hour, capped at 1."""

    return min(sum(segment.end_fraction - segment.start_fraction for segment in segments), 1.0)


def build_heatmap_grid(runs: Iterable[Run], week_of: datetime) -> HeatmapGrid:
    """Build the 7x24 grid for the week holding `week_of`.

    Args:
        runs: Runs in any order; runs outside the week are ignored.
        week_of: Any moment within the target week (naive values are UTC).

    Returns:
        HeatmapGrid with Sunday as row 0.
    """

    week_begin = heatmap_week_start(week_of)
    week_end = week_begin + timedelta(days=DAYS_PER_WEEK)

    segments: list[list[list[HeatmapSegment]]] = [
        [[] for _ in range(HOURS_PER_DAY)] for _ in range(DAYS_PER_WEEK)
    ]
    placed = 0
    for run in runs:
        start, end = run_time_range(run)
        clipped = clip_to_week(start, end, week_begin, week_end)
        if clipped is None:
            continue
        placed += 1
        for day_index, hour, segment in distribute_to_hours(*clipped, run):
            segments[day_index][hour].append(segment)

    days = tuple(
        tuple(
            HeatmapCell(
                day_index=day_index,
                hour=hour,
                day=(week_begin + timedelta(days=day_index)).date(),
                segments=tuple(cell_segments),
                total_coverage=cell_coverage(cell_segments),
            )
            for hour, cell_segments in enumerate(day_segments)
        )
        for day_index, day_segments in enumerate(segments)
    )
    logger.debug("Heatmap week %s: %d runs placed.", week_begin.date(), placed)
    return HeatmapGrid(
        week_start=week_begin,
        week_end=week_end,
        week_label=f"Week of {week_begin.month}/{week_begin.day}",
        days=days,
    )


def _cells(grid: HeatmapGrid) -> Iterable[HeatmapCell]:
    for day in grid.days:
        yield from day


def is_hour_in_active_window(hour: int, active_hours: ActiveHours) -> bool:
    """Return True when `hour` falls within the play window."""

    if active_hours.start_hour < active_hours.end_hour:
        return active_hours.start_hour <= hour < active_hours.end_hour
    return hour >= active_hours.start_hour or hour < active_hours.end_hour


def active_hour_count(active_hours: ActiveHours) -> int:
    """Return how many hours per day the play window spans."""

    if active_hours.start_hour < active_hours.end_hour:
        return active_hours.end_hour - active_hours.start_hour
    return HOURS_PER_DAY - active_hours.start_hour + active_hours.end_hour


def overall_coverage(grid: HeatmapGrid) -> float:
    """Return the mean coverage of all 168 cells."""

    return sum(cell.total_coverage for cell in _cells(grid)) / TOTAL_CELLS


def daily_coverage(grid: HeatmapGrid) -> tuple[float, ...]:
    """Return the mean coverage of each day, Sunday first."""

    return tuple(sum(cell.total_coverage for cell in day) / HOURS_PER_DAY for day in grid.days)


def active_hours_coverage(grid: HeatmapGrid, active_hours: ActiveHours) -> float:
    """Return the mean coverage of the cells inside the play window."""

    total_cells = DAYS_PER_WEEK * active_hour_count(active_hours)
    covered = sum(
        cell.total_coverage
        for cell in _cells(grid)
        if is_hour_in_active_window(cell.hour, active_hours)
    )
    return covered / total_cells


def run_type_activity(grid: HeatmapGrid) -> dict[str, RunTypeActivity]:
    """Return coverage, active seconds and distinct runs per run type.

    Coverage is the run type's segment time as a fraction of the whole week.
    """

    occupied: dict[str, float] = {}
    run_ids: dict[str, set[str]] = {}
    for cell in _cells(grid):
        for segment in cell.segments:
            key = segment.run_type.value
            occupied[key] = occupied.get(key, 0.0) + segment.end_fraction - segment.start_fraction
            run_ids.setdefault(key, set()).add(segment.run_id)

    return {
        key: RunTypeActivity(
            coverage=hours / TOTAL_CELLS,
            active_seconds=hours * SECONDS_PER_HOUR,
            run_count=len(run_ids[key]),
        )
        for key, hours in occupied.items()
    }


def run_type_breakdown(activity: dict[str, RunTypeActivity]) -> dict[str, float]:
    """Return each run type's share of all segment time (shares sum to 1)."""

    total = sum(entry.active_seconds for entry in activity.values())
    if total == 0:
        return {}
    return {key: entry.active_seconds / total for key, entry in activity.items()}


def total_active_seconds(grid: HeatmapGrid) -> float:
    """Return the covered seconds across the week (overlaps count once)."""

    return sum(cell.total_coverage for cell in _cells(grid)) * SECONDS_PER_HOUR


def total_idle_seconds(grid: HeatmapGrid, active_hours: ActiveHours | None = None) -> float:
    """Return the uncovered seconds, within the play window when one is set."""

    return sum(
        (1 - cell.total_coverage) * SECONDS_PER_HOUR
        for cell in _cells(grid)
        if active_hours is None or is_hour_in_active_window(cell.hour, active_hours)
    )


def count_runs(grid: HeatmapGrid) -> int:
    """Return the number of distinct runs in the grid."""

    return len({segment.run_id for cell in _cells(grid) for segment in cell.segments})


def calculate_heatmap_summary(
    grid: HeatmapGrid,
    active_hours: ActiveHours | None = None,
) -> HeatmapSummary:
    """Summarize a grid.

    Args:
        grid: Grid from `build_heatmap_grid`.
        active_hours: Optional play window. Without one, the active hours
            coverage equals the overall coverage and idle time spans the
            whole week.
    """

    overall = overall_coverage(grid)
    activity = run_type_activity(grid)
    return HeatmapSummary(
        overall_coverage=overall,
        daily_coverage=daily_coverage(grid),
        active_hours_coverage=overall if active_hours is None else active_hours_coverage(grid, active_hours),
        run_type_breakdown=run_type_breakdown(activity),
        run_type_activity=activity,
        total_active_seconds=total_active_seconds(grid),
        total_idle_seconds=total_idle_seconds(grid, active_hours),
        run_count=count_runs(grid),
    )


def summarize_week(
    runs: Sequence[Run],
    week_of: datetime,
    active_hours: ActiveHours | None = None,
) -> tuple[HeatmapGrid, HeatmapSummary]:
    """Build a week's grid and its summary in one call."""

    grid = build_heatmap_grid(runs, week_of)
    return grid, calculate_heatmap_summary(grid, active_hours)
