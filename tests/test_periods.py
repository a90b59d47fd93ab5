"""Tests for period keys, labels and calendar bounds."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from analysis.categories import Duration
from analysis.errors import UnsupportedDurationError
from analysis.periods import (
    calendar_period_bounds,
    parse_period_key,
    period_key,
    period_label,
    shift_months,
    week_start,
)

pytestmark = pytest.mark.unit


def test_weekly_key_is_the_sunday_of_the_week() -> None:
    """Bucket a Friday into the week starting on the previous Sunday."""

    friday = datetime(2024, 3, 15, 18, 30, tzinfo=timezone.utc)

    assert period_key(friday, Duration.weekly) == "2024-03-10"


def test_weekly_key_for_a_sunday_is_that_day() -> None:
    """Keep Sundays in their own week."""

    sunday = datetime(2024, 3, 10, 0, 5)

    assert period_key(sunday, Duration.weekly) == "2024-03-10"


def test_weekly_key_crosses_month_and_year_boundaries() -> None:
    """Anchor early-January weeks on a December Sunday."""

    assert period_key(datetime(2025, 1, 2, 9, 0), Duration.weekly) == "2024-12-29"


@pytest.mark.parametrize(
    ("duration", "expected"),
    [
        (Duration.per_run, "2024-03-05T07:08:09.123Z"),
        (Duration.daily, "2024-03-05"),
        (Duration.monthly, "2024-03"),
        (Duration.yearly, "2024"),
    ],
)
def test_period_key_formats(duration: Duration, expected: str) -> None:
    """Render zero-padded keys for every duration."""

    timestamp = datetime(2024, 3, 5, 7, 8, 9, 123_456, tzinfo=timezone.utc)

    assert period_key(timestamp, duration) == expected


def test_per_run_key_is_rendered_in_utc() -> None:
    """Convert aware timestamps in other zones to UTC for per-run keys."""

    eastern = timezone(timedelta(hours=-5))
    timestamp = datetime(2024, 3, 5, 22, 0, tzinfo=eastern)

    assert period_key(timestamp, Duration.per_run) == "2024-03-06T03:00:00.000Z"


def test_calendar_keys_round_trip_to_the_same_bucket() -> None:
    """Parse every calendar key back into a datetime inside the same bucket."""

    start = datetime(2023, 12, 20, 13, 0)
    for offset in range(60):
        timestamp = start + timedelta(days=offset)
        for duration in (Duration.daily, Duration.weekly, Duration.monthly, Duration.yearly):
            key = period_key(timestamp, duration)
            assert period_key(parse_period_key(key, duration), duration) == key


def test_per_run_key_round_trips() -> None:
    """Parse a per-run key back into the instant it encodes."""

    timestamp = datetime(2024, 6, 1, 8, 30, 15, 250_000, tzinfo=timezone.utc)
    key = period_key(timestamp, Duration.per_run)

    assert parse_period_key(key, Duration.per_run) == timestamp


def test_unsupported_duration_raises() -> None:
    """Reject durations outside the supported set."""

    with pytest.raises(UnsupportedDurationError):
        period_key(datetime(2024, 1, 1), "hourly")  # type: ignore[arg-type]


def test_per_run_labels_number_most_recent_first() -> None:
    """Number oldest-first per-run periods so the newest is `Run #1`."""

    labels = [period_label("2024-03-01T00:00:00.000Z", Duration.per_run, index, 3) for index in range(3)]

    assert labels == ["Run #3", "Run #2", "Run #1"]


def test_per_run_label_without_position_is_a_date() -> None:
    """Fall back to `M/D/YYYY` when no position is given."""

    assert period_label("2024-03-09T10:00:00.000Z", Duration.per_run) == "3/9/2024"


@pytest.mark.parametrize(
    ("key", "duration", "expected"),
    [
        ("2024-03-15", Duration.daily, "Mar 15"),
        ("2024-03-10", Duration.weekly, "Mar 10"),
        ("2024-03", Duration.monthly, "Mar '24"),
        ("2024", Duration.yearly, "2024"),
    ],
)
def test_calendar_labels(key: str, duration: Duration, expected: str) -> None:
    """Format calendar keys into short labels."""

    assert period_label(key, duration) == expected


def test_week_start_returns_midnight_sunday() -> None:
    """Normalize to midnight of the containing week's Sunday."""

    assert week_start(datetime(2024, 3, 13, 23, 59)) == datetime(2024, 3, 10)


def test_shift_months_clamps_the_day() -> None:
    """Clamp month-end days when stepping into shorter months."""

    assert shift_months(datetime(2024, 3, 31), -1) == datetime(2024, 2, 29)
    assert shift_months(datetime(2024, 1, 15), -2) == datetime(2023, 11, 15)


def test_calendar_period_bounds_weekly() -> None:
    """Step back whole weeks from the reference week."""

    start, end, label = calendar_period_bounds(datetime(2024, 3, 15, 12, 0), Duration.weekly, 1)

    assert start == datetime(2024, 3, 3)
    assert end == datetime(2024, 3, 9, 23, 59, 59, 999_999)
    assert label == "Week of 3/3"


def test_calendar_period_bounds_monthly_and_yearly() -> None:
    """Cover whole months and years in the reference's timezone."""

    reference = datetime(2024, 3, 31, 9, 0, tzinfo=timezone.utc)

    start, end, label = calendar_period_bounds(reference, Duration.monthly, 1)
    assert (start, end.day, label) == (datetime(2024, 2, 1, tzinfo=timezone.utc), 29, "Feb")

    start, end, label = calendar_period_bounds(reference, Duration.yearly, 2)
    assert start == datetime(2022, 1, 1, tzinfo=timezone.utc)
    assert end.date().isoformat() == "2022-12-31"
    assert label == "2022"
