"""Best-effort Battle Report parsing utilities.

Every `Label: Value` / `Label<TAB>Value` line of a report becomes a typed run
field keyed by its camelCase label. The guiding rules are:

- Unknown labels are kept, not rejected.
- Raw report text is always preserved unchanged when persisted.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime

from analysis.categories import FieldDataType, RunType
from analysis.dto import RunField
from analysis.quantity import create_run_field, parse_datetime_value, to_camel_case


@dataclass(frozen=True)
class ParsedBattleReport:
    """Parsed output for Battle Report ingestion.

    Attributes:
        checksum: SHA-256 checksum of the normalized raw text.
        fields: Typed run fields keyed by camelCase label, in report order.
        battle_date: Parsed battle datetime (UTC) if present.
        tier: Parsed tier number if present (`11+` yields 11).
        tier_label: Tier exactly as written, or an empty string.
        run_type: Tournament when the tier carries a `+`, otherwise farm.
        wave: Parsed wave value if present.
        real_time_seconds: Parsed real time duration in seconds (0 if absent).
    """

    checksum: str
    fields: dict[str, RunField] = field(default_factory=dict)
    battle_date: datetime | None = None
    tier: int | None = None
    tier_label: str = ""
    run_type: RunType = RunType.farm
    wave: int | None = None
    real_time_seconds: int = 0


_LABEL_SEPARATOR = r"(?:[ \t]*:[ \t]*|\t+[ \t]*|[ \t]{2,})"
_LABEL_VALUE_RE = re.compile(
    rf"(?im)^[ \t]*(?P<label>.+?){_LABEL_SEPARATOR}(?P<value>.*?)[ \t]*$"
)
_TIER_NUMBER_RE = re.compile(r"(\d+)")


def compute_battle_report_checksum(raw_text: str) -> str:
    """Compute a deterministic checksum for a Battle Report.

    Args:
        raw_text: Raw Battle Report text as pasted by the user.

    Returns:
        A hex-encoded SHA-256 checksum.

    Notes:
        The checksum is computed on a normalized form of the raw text to make
        pastes robust to common newline differences. The stored raw text is not
        modified.
    """

    normalized = raw_text.replace("\r\n", "\n").replace("\r", "\n").strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def parse_battle_report(raw_text: str) -> ParsedBattleReport:
    """Parse a Battle Report into typed run fields and run metadata.

    Args:
        raw_text: Raw Battle Report text as pasted by the user.

    Returns:
        ParsedBattleReport containing a checksum, every extracted field and
        the run metadata the analytics group by.
    """

    fields: dict[str, RunField] = {}
    for label, value in _iter_label_value_lines(raw_text):
        field_name = to_camel_case(_normalize_label(label))
        if not field_name or field_name in fields:
            continue
        fields[field_name] = create_run_field(re.sub(r"\s+", " ", label.strip()), value)

    tier_label = _raw_value(fields.get("tier"))
    return ParsedBattleReport(
        checksum=compute_battle_report_checksum(raw_text),
        fields=fields,
        battle_date=_battle_date(fields),
        tier=_parse_tier(tier_label),
        tier_label=tier_label,
        run_type=RunType.tournament if "+" in tier_label else RunType.farm,
        wave=_parse_int(_raw_value(fields.get("wave"))),
        real_time_seconds=_duration_seconds(fields.get("realTime")),
    )


def _iter_label_value_lines(raw_text: str) -> list[tuple[str, str]]:
    """Return a best-effort list of (label, value) pairs from report text.

    Notes:
        Battle Reports contain a mix of sections and labels. This function
        tolerates extra whitespace, reordered sections, and previously unseen
        labels by extracting only lines that look like `Label: Value` or
        `Label<TAB>Value`. Section headers without a value are skipped.
    """

    extracted: list[tuple[str, str]] = []
    for match in _LABEL_VALUE_RE.finditer(raw_text):
        label = (match.group("label") or "").strip()
        value = (match.group("value") or "").strip()
        if not label or not value:
            continue
        extracted.append((label, value))
    return extracted


def _normalize_label(label: str) -> str:
    """Normalize a Battle Report label for field-name conversion."""

    collapsed = re.sub(r"\s+", " ", label.strip())
    return collapsed.casefold()


def _raw_value(run_field: RunField | None) -> str:
    return "" if run_field is None else run_field.raw_value


def _parse_int(value: str) -> int | None:
    """Parse a base-10 integer if possible."""

    cleaned = value.strip().replace(",", "")
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def _parse_tier(value: str) -> int | None:
    """Parse the tier number out of labels such as `10` or `11+`."""

    match = _TIER_NUMBER_RE.search(value)
    if match is None:
        return None
    tier = int(match.group(1))
    return tier if tier > 0 else None


def _duration_seconds(run_field: RunField | None) -> int:
    if run_field is None or run_field.data_type != FieldDataType.duration:
        return 0
    return int(run_field.value)


def _battle_date(fields: dict[str, RunField]) -> datetime | None:
    """Return the battle date from the `Battle Date` (or `Date`) field."""

    for field_name in ("battleDate", "date"):
        run_field = fields.get(field_name)
        if run_field is None:
            continue
        if isinstance(run_field.value, datetime):
            return run_field.value
        parsed = parse_datetime_value(run_field.raw_value)
        if parsed is not None:
            return parsed
    return None
