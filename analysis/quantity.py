"""Best-effort typing of raw Battle Report values.

Battle Reports carry compact numeric strings (e.g. `7.67M`, `$55.90B`,
`x1.15`), durations (`1d 13h 24m 51s`), dates and free text. This module turns
each raw `Label -> Value` pair into a typed `RunField`.

This module is intentionally:
- pure (no Django imports, no database writes),
- defensive (never raises on unknown formats).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Final

from .categories import FieldDataType
from .dto import RunField

# Suffixes are case-sensitive: `q` (quadrillion) and `Q` (quintillion) differ.
_MAGNITUDE_MULTIPLIERS: Final[dict[str, Decimal]] = {
    "": Decimal(1),
    "K": Decimal(10) ** 3,
    "M": Decimal(10) ** 6,
    "B": Decimal(10) ** 9,
    "T": Decimal(10) ** 12,
    "q": Decimal(10) ** 15,
    "Q": Decimal(10) ** 18,
    "s": Decimal(10) ** 21,
    "S": Decimal(10) ** 24,
    "O": Decimal(10) ** 27,
    "N": Decimal(10) ** 30,
    "D": Decimal(10) ** 33,
    "aa": Decimal(10) ** 36,
    "ab": Decimal(10) ** 39,
    "ac": Decimal(10) ** 42,
    "ad": Decimal(10) ** 45,
    "ae": Decimal(10) ** 48,
    "af": Decimal(10) ** 51,
    "ag": Decimal(10) ** 54,
    "ah": Decimal(10) ** 57,
    "ai": Decimal(10) ** 60,
    "aj": Decimal(10) ** 63,
}

# Lowercase forms seen in hand-typed reports.
_LOWERCASE_ALIASES: Final[dict[str, str]] = {"k": "K", "m": "M", "b": "B", "t": "T"}

_COMPACT_NUMBER_RE = re.compile(r"^(?P<number>\d+(?:\.\d*)?)\s*(?P<suffix>[A-Za-z]{0,2})$")
_DURATION_PART_RE = re.compile(r"(?i)(\d+)\s*([dhms])")

_DURATION_UNIT_SECONDS: Final[dict[str, int]] = {"d": 86_400, "h": 3_600, "m": 60, "s": 1}

_DATE_FORMATS: Final[tuple[str, ...]] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%b %d, %Y %H:%M",
    "%B %d, %Y %H:%M",
    "%b %d, %Y",
)

# Keyed by label with case, spaces and underscores removed, so `Killed By`,
# `killedBy` and `killed_by` resolve alike.
_EXACT_FIELD_TYPES: Final[dict[str, FieldDataType]] = {
    "date": FieldDataType.date,
    "time": FieldDataType.date,
    "battledate": FieldDataType.date,
    "notes": FieldDataType.string,
    "runtype": FieldDataType.string,
    "killedby": FieldDataType.string,
}

# Substring rules; first match wins.
_PATTERN_FIELD_TYPES: Final[tuple[tuple[str, FieldDataType], ...]] = (
    ("time", FieldDataType.duration),
    ("date", FieldDataType.date),
)


def parse_shorthand_number(raw_value: str) -> float:
    """Parse a compact number string into a float.

    Args:
        raw_value: Raw value string (e.g. `7.67M`, `$1,234.5`, `x8.00`, `15%`).

    Returns:
        The parsed number, or 0.0 when the value cannot be parsed.

    Notes:
        - `$` and `,` are ignored; a leading `x` multiplier marker is dropped.
        - A trailing `%` is dropped and the number kept as-is (`15%` -> 15.0).
        - Unknown suffixes yield 0.0 rather than a guessed magnitude.
    """

    cleaned = raw_value.replace("$", "").replace(",", "").strip()
    if cleaned[:1] == "x":
        cleaned = cleaned[1:].strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1].strip()

    match = _COMPACT_NUMBER_RE.match(cleaned)
    if match is None:
        return 0.0

    suffix = match.group("suffix")
    suffix = _LOWERCASE_ALIASES.get(suffix, suffix)
    multiplier = _MAGNITUDE_MULTIPLIERS.get(suffix)
    if multiplier is None:
        return 0.0

    try:
        number = Decimal(match.group("number"))
    except InvalidOperation:
        return 0.0
    return float(number * multiplier)


def format_large_number(value: float) -> str:
    """Format a number with a single-letter or two-letter magnitude suffix.

    Values below 1000 are rounded to an integer; larger values keep one
    decimal place (`1500000` -> `1.5M`, `1000` -> `1K`).
    """

    if abs(value) < 1000:
        return str(round(value))

    suffix = ""
    multiplier = Decimal(1)
    magnitude = Decimal(repr(abs(value)))
    for candidate, candidate_multiplier in _MAGNITUDE_MULTIPLIERS.items():
        if candidate_multiplier <= magnitude:
            suffix, multiplier = candidate, candidate_multiplier

    scaled = f"{float(Decimal(repr(value)) / multiplier):.1f}"
    if scaled.endswith(".0"):
        scaled = scaled[:-2]
    return f"{scaled}{suffix}"


def parse_duration(raw_value: str) -> int:
    """Parse durations like `7H 45M 35S` or `1d 13h 24m 51s` into seconds.

    Returns:
        Total seconds, or 0 when no duration components are present.
    """

    total = 0
    for number, unit in _DURATION_PART_RE.findall(raw_value):
        total += int(number) * _DURATION_UNIT_SECONDS[unit.lower()]
    return total


def format_duration(seconds: int) -> str:
    """Format seconds as `1d 2h 3m 4s`, omitting zero components."""

    days, remainder = divmod(int(seconds), 86_400)
    hours, remainder = divmod(remainder, 3_600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0:
        parts.append(f"{secs}s")
    return " ".join(parts) or "0s"


def parse_datetime_value(raw_value: str | None) -> datetime | None:
    """Parse a date/datetime string into a timezone-aware UTC datetime.

    Args:
        raw_value: Raw date string (Battle Report, US, or ISO-8601 formats).

    Returns:
        Parsed datetime, or None when no known format matches.
    """

    if raw_value is None:
        return None

    value = raw_value.strip()
    if not value:
        return None

    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _normalize_label(label: str) -> str:
    return label.replace(" ", "").replace("_", "")


def field_data_type(original_key: str, raw_value: str | None = None) -> FieldDataType:
    """Return the data type a field is stored as, based on its label.

    Args:
        original_key: Field label as it appears in the report.
        raw_value: Raw value, used to detect tournament tiers such as `10+`.

    Returns:
        FieldDataType for the field. Unmatched labels default to `number`.
    """

    lower_key = original_key.strip().lower()

    exact = _EXACT_FIELD_TYPES.get(_normalize_label(lower_key))
    if exact is not None:
        return exact

    if lower_key == "tier" and raw_value is not None and "+" in raw_value:
        return FieldDataType.string

    for pattern, data_type in _PATTERN_FIELD_TYPES:
        if pattern in lower_key:
            return data_type

    return FieldDataType.number


def create_run_field(original_key: str, raw_value: str) -> RunField:
    """Create a typed run field from a raw label/value pair.

    Args:
        original_key: Field label as it appears in the report.
        raw_value: Raw string value.

    Returns:
        RunField with parsed value, display value and data type. Dates that
        fail to parse are kept as strings.
    """

    data_type = field_data_type(original_key, raw_value)
    cleaned = raw_value.strip()

    if data_type == FieldDataType.duration:
        seconds = parse_duration(cleaned)
        return RunField(
            value=seconds,
            raw_value=cleaned,
            display_value=format_duration(seconds),
            original_key=original_key,
            data_type=data_type,
        )

    if data_type == FieldDataType.date:
        parsed = parse_datetime_value(cleaned)
        if parsed is None:
            return RunField(
                value=cleaned,
                raw_value=cleaned,
                display_value=cleaned,
                original_key=original_key,
                data_type=FieldDataType.string,
            )
        return RunField(
            value=parsed,
            raw_value=cleaned,
            display_value=cleaned,
            original_key=original_key,
            data_type=data_type,
        )

    if data_type == FieldDataType.number:
        number = parse_shorthand_number(cleaned)
        return RunField(
            value=number,
            raw_value=cleaned,
            display_value=format_large_number(number),
            original_key=original_key,
            data_type=data_type,
        )

    return RunField(
        value=cleaned,
        raw_value=cleaned,
        display_value=cleaned,
        original_key=original_key,
        data_type=data_type,
    )


def to_camel_case(label: str) -> str:
    """Normalize a report label into a camelCase field name.

    Examples:
        `Coins Earned` -> `coinsEarned`, `Damage Taken Wall` ->
        `damageTakenWall`, `Real Time` -> `realTime`.
    """

    return re.sub(
        r"[^a-zA-Z0-9]+(.)",
        lambda match: match.group(1).upper(),
        label.strip().lower(),
    )
