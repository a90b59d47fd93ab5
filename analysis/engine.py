"""Orchestration entry points for the Analysis Engine.

The Analysis Engine is a pure, non-Django module that accepts in-memory inputs
and returns DTOs. It must not import Django or perform database writes.

Callers hand over persisted run records (ORM rows, or any object exposing the
same attributes); `runs_from_records` coerces them into `Run` DTOs that every
calculator accepts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Protocol, TypeGuard

from .categories import FieldDataType, RunType
from .dto import Run, RunField
from .quantity import create_run_field

logger = logging.getLogger(__name__)


class _RunRecordLike(Protocol):
    """Protocol for persisted run records (duck-typed)."""

    run_id: object
    battle_date: datetime | None
    tier: int | None
    run_type: str
    real_time_seconds: int | None
    fields: Mapping[str, object]


def runs_from_records(records: Iterable[object]) -> tuple[Run, ...]:
    """Coerce persisted run records into `Run` DTOs.

    Args:
        records: Objects exposing `run_id`, `battle_date`, `tier`, `run_type`,
            `real_time_seconds`, `wave` and a JSON-like `fields` mapping.

    Returns:
        Runs in input order.

    Notes:
        Any record missing a battle date or carrying an unknown run type is
        skipped. Stored fields may be full field dicts or bare raw strings.
    """

    runs: list[Run] = []
    skipped = 0

    for record in records:
        if not _looks_like_run_record(record):
            skipped += 1
            continue

        timestamp = _coerce_datetime(record.battle_date)
        run_type = _coerce_run_type(record.run_type)
        if timestamp is None or run_type is None:
            skipped += 1
            continue

        runs.append(
            Run(
                run_id=str(record.run_id),
                timestamp=timestamp,
                tier=_coerce_int(record.tier),
                run_type=run_type,
                real_time=_coerce_int(record.real_time_seconds) or 0,
                wave=_coerce_int(getattr(record, "wave", None)),
                fields=fields_from_json(record.fields),
            )
        )

    if skipped:
        logger.debug("Skipped %d run records missing required data.", skipped)
    return tuple(runs)


def fields_from_json(payload: Mapping[str, object] | None) -> dict[str, RunField]:
    """Rebuild typed run fields from their stored JSON form.

    Args:
        payload: Mapping of field name to either a stored field dict
            (`value`, `raw_value`, `display_value`, `original_key`,
            `data_type`) or a raw string to be typed again.

    Returns:
        Field name -> RunField. Entries that are neither are dropped.
    """

    fields: dict[str, RunField] = {}
    for field_name, stored in (payload or {}).items():
        if isinstance(stored, str):
            fields[field_name] = create_run_field(field_name, stored)
            continue
        if not isinstance(stored, Mapping):
            continue

        raw_value = str(stored.get("raw_value", ""))
        original_key = str(stored.get("original_key") or field_name)
        try:
            data_type = FieldDataType(stored.get("data_type", FieldDataType.number))
        except ValueError:
            fields[field_name] = create_run_field(original_key, raw_value)
            continue

        value = stored.get("value")
        if data_type == FieldDataType.date and isinstance(value, str):
            value = _coerce_datetime(value)
            if value is None:
                fields[field_name] = create_run_field(original_key, raw_value)
                continue

        fields[field_name] = RunField(
            value=value,
            raw_value=raw_value,
            display_value=str(stored.get("display_value", raw_value)),
            original_key=original_key,
            data_type=data_type,
        )
    return fields


def fields_to_json(fields: Mapping[str, RunField]) -> dict[str, dict[str, object]]:
    """Serialize typed run fields into a JSON-safe mapping."""

    payload: dict[str, dict[str, object]] = {}
    for field_name, field in fields.items():
        value = field.value
        if isinstance(value, datetime):
            value = value.isoformat()
        payload[field_name] = {
            "value": value,
            "raw_value": field.raw_value,
            "display_value": field.display_value,
            "original_key": field.original_key,
            "data_type": str(field.data_type),
        }
    return payload


def _looks_like_run_record(obj: object) -> TypeGuard[_RunRecordLike]:
    """Return True if an object exposes the persisted run interface."""

    return all(
        hasattr(obj, name)
        for name in ("run_id", "battle_date", "tier", "run_type", "real_time_seconds", "fields")
    )


def _coerce_int(value: object) -> int | None:
    """Coerce an object into an int when safe."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _coerce_datetime(value: object) -> datetime | None:
    """Coerce a datetime or ISO string into an aware datetime when safe."""

    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _coerce_run_type(value: object) -> RunType | None:
    """Coerce a stored run type string into a RunType when valid."""

    try:
        return RunType(str(value))
    except ValueError:
        return None
