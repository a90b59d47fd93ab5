"""Period keys, labels and calendar bounds.

A period key is the canonical identifier of the time bucket a run falls into.
Keys for calendar durations are zero-padded so that lexicographic order equals
chronological order; per-run keys are full UTC ISO-8601 timestamps.

Calendar buckets use the timestamp's own wall clock: aware datetimes are
bucketed in their own timezone, naive datetimes as-is.
"""

from __future__ import annotations

import calendar
from datetime import datetime, time, timedelta, timezone
from typing import Final

from .categories import Duration
from .errors import UnsupportedDurationError

_MONTH_ABBREVIATIONS: Final[tuple[str, ...]] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

_END_OF_DAY: Final[time] = time.max


def period_key(timestamp: datetime, duration: Duration) -> str:
    """Return the bucket key for a timestamp.

    Args:
        timestamp: Run timestamp.
        duration: Bucket size.

    Returns:
        - per-run: UTC ISO-8601 timestamp with milliseconds (`2024-03-15T10:30:00.000Z`).
        - daily: `YYYY-MM-DD`.
        - weekly: `YYYY-MM-DD` of the Sunday starting the week.
        - monthly: `YYYY-MM`.
        - yearly: `YYYY`.
    """

    if duration == Duration.per_run:
        return _utc_iso_key(timestamp)
    if duration == Duration.daily:
        return f"{timestamp.year:04d}-{timestamp.month:02d}-{timestamp.day:02d}"
    if duration == Duration.weekly:
        sunday = week_start(timestamp)
        return f"{sunday.year:04d}-{sunday.month:02d}-{sunday.day:02d}"
    if duration == Duration.monthly:
        return f"{timestamp.year:04d}-{timestamp.month:02d}"
    if duration == Duration.yearly:
        return f"{timestamp.year:04d}"
    raise UnsupportedDurationError(duration)


def parse_period_key(key: str, duration: Duration) -> datetime:
    """Parse a period key back into the start of its bucket.

    Per-run keys parse to the aware UTC timestamp they encode; calendar keys
    parse to a naive midnight datetime at the start of the bucket.
    """

    if duration == Duration.per_run:
        return datetime.fromisoformat(key.replace("Z", "+00:00"))
    if duration in (Duration.daily, Duration.weekly):
        return datetime.strptime(key, "%Y-%m-%d")
    if duration == Duration.monthly:
        return datetime.strptime(key, "%Y-%m")
    if duration == Duration.yearly:
        return datetime.strptime(key, "%Y")
    raise UnsupportedDurationError(duration)


def period_sort_value(key: str, duration: Duration) -> datetime | str:
    """Return a sort value ordering keys chronologically."""

    if duration == Duration.per_run:
        return parse_period_key(key, duration)
    return key


def period_label(
    key: str,
    duration: Duration,
    index: int | None = None,
    total_count: int | None = None,
) -> str:
    """Format a period key into a short display label.

    Args:
        key: Period key produced by `period_key`.
        duration: Bucket size of the key.
        index: Position of the period in an oldest-first list.
        total_count: Number of periods in that list.

    Returns:
        - per-run with index/total: `Run #N` where the most recent period is
          `Run #1` when listed last (`N = total_count - index`).
        - per-run otherwise: `M/D/YYYY`.
        - daily/weekly: `Mar 15`.
        - monthly: `Mar '24`.
        - yearly: the key itself.
    """

    if duration == Duration.per_run:
        if index is not None and total_count is not None:
            return f"Run #{total_count - index}"
        parsed = parse_period_key(key, duration)
        return f"{parsed.month}/{parsed.day}/{parsed.year}"
    if duration in (Duration.daily, Duration.weekly):
        parsed = parse_period_key(key, duration)
        return f"{_MONTH_ABBREVIATIONS[parsed.month - 1]} {parsed.day}"
    if duration == Duration.monthly:
        parsed = parse_period_key(key, duration)
        return f"{_MONTH_ABBREVIATIONS[parsed.month - 1]} '{parsed.year % 100:02d}"
    if duration == Duration.yearly:
        return key
    raise UnsupportedDurationError(duration)


def week_start(timestamp: datetime) -> datetime:
    """Return midnight of the Sunday starting the timestamp's week."""

    midnight = timestamp.replace(hour=0, minute=0, second=0, microsecond=0)
    # `weekday()` is Monday=0; shift so Sunday=0.
    days_since_sunday = (midnight.weekday() + 1) % 7
    return midnight - timedelta(days=days_since_sunday)


def shift_months(timestamp: datetime, months: int) -> datetime:
    """Shift a timestamp by whole months, clamping the day to the target month."""

    month_index = timestamp.year * 12 + (timestamp.month - 1) + months
    year, month_zero = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month_zero + 1)[1]
    return timestamp.replace(year=year, month=month_zero + 1, day=min(timestamp.day, last_day))


def calendar_period_bounds(
    reference: datetime,
    duration: Duration,
    offset: int,
) -> tuple[datetime, datetime, str]:
    """Return the calendar period `offset` steps before the reference's period.

    Args:
        reference: Anchor timestamp (offset 0 is the period containing it).
        duration: daily, weekly, monthly or yearly.
        offset: Number of periods to step back.

    Returns:
        Tuple of (start, end, label). `start` is midnight of the first day and
        `end` is the last microsecond of the last day, both in the reference's timezone.
        Labels: daily `M/D`, weekly `Week of M/D`, monthly `Mar`, yearly `YYYY`.
    """

    if duration == Duration.daily:
        target = reference - timedelta(days=offset)
        start = _start_of_day(target)
        end = _end_of_day(target)
        return start, end, f"{target.month}/{target.day}"

    if duration == Duration.weekly:
        target = reference - timedelta(days=offset * 7)
        start = week_start(target)
        end = _end_of_day(start + timedelta(days=6))
        return start, end, f"Week of {start.month}/{start.day}"

    if duration == Duration.monthly:
        target = shift_months(reference, -offset)
        start = _start_of_day(target.replace(day=1))
        last_day = calendar.monthrange(target.year, target.month)[1]
        end = _end_of_day(target.replace(day=last_day))
        return start, end, _MONTH_ABBREVIATIONS[target.month - 1]

    if duration == Duration.yearly:
        year = reference.year - offset
        start = _start_of_day(reference.replace(year=year, month=1, day=1))
        end = _end_of_day(reference.replace(year=year, month=12, day=31))
        return start, end, f"{year:04d}"

    raise UnsupportedDurationError(duration)


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), _END_OF_DAY, tzinfo=value.tzinfo)


def _utc_iso_key(timestamp: datetime) -> str:
    """Render a timestamp as `YYYY-MM-DDTHH:MM:SS.mmmZ` in UTC."""

    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return f"{timestamp:%Y-%m-%dT%H:%M:%S}.{timestamp.microsecond // 1000:03d}Z"
