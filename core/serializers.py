"""JSON conversion for analysis DTOs.

Analysis results are frozen dataclasses; views hand them to `JsonResponse`
through `to_json`, which flattens nested DTOs and references runs by id.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum

from analysis.dto import Run

JsonValue = None | bool | int | float | str | list["JsonValue"] | dict[str, "JsonValue"]


def run_reference(run: Run) -> dict[str, JsonValue]:
    """Return the compact form used wherever a DTO points at a run."""

    return {
        "run_id": run.run_id,
        "timestamp": run.timestamp.isoformat(),
        "tier": run.tier,
        "run_type": run.run_type.value,
        "real_time": run.real_time,
        "wave": run.wave,
    }


def to_json(value: object) -> JsonValue:
    """Convert a DTO tree into JSON-safe primitives.

    Args:
        value: Dataclass, mapping, sequence, enum, date or primitive.

    Returns:
        Nested dicts/lists of JSON primitives. Runs collapse to
        `run_reference`; enums become their values.
    """

    if isinstance(value, Run):
        return run_reference(value)
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: to_json(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise TypeError(f"Cannot serialize {type(value).__name__} to JSON.")
