"""Pytest fixtures shared across unit and Django integration tests."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone

import pytest

from analysis.categories import FieldDataType, RunType
from analysis.dto import Run, RunField

RunFactory = Callable[..., Run]


def number_field(name: str, value: float) -> RunField:
    """Return a numeric RunField as stored after parsing."""

    return RunField(
        value=float(value),
        raw_value=str(value),
        display_value=str(value),
        original_key=name,
        data_type=FieldDataType.number,
    )


@pytest.fixture
def make_run() -> RunFactory:
    """Return a factory building `Run` DTOs with numeric fields.

    Keyword arguments mirror `Run`; `fields` maps names to numbers (wrapped as
    number fields) or to prebuilt `RunField` objects. `real_time` is also
    stored as a `realTime` duration field.
    """

    counter = itertools.count(1)

    def factory(
        fields: Mapping[str, float | RunField] | None = None,
        *,
        timestamp: datetime | None = None,
        tier: int | None = 10,
        run_type: RunType = RunType.farm,
        real_time: int = 3600,
        wave: int | None = None,
        run_id: str | None = None,
    ) -> Run:
        index = next(counter)
        typed: dict[str, RunField] = {
            "realTime": RunField(
                value=real_time,
                raw_value=f"{real_time}s",
                display_value=f"{real_time}s",
                original_key="Real Time",
                data_type=FieldDataType.duration,
            )
        }
        for name, value in (fields or {}).items():
            typed[name] = value if isinstance(value, RunField) else number_field(name, value)
        return Run(
            run_id=run_id or f"run-{index}",
            timestamp=timestamp or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc).replace(day=index % 28 + 1),
            tier=tier,
            run_type=run_type,
            real_time=real_time,
            fields=typed,
            wave=wave,
        )

    return factory


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    The suite must be runnable by intent:
    - `unit`: pure, fast tests with no database access.
    - `integration`: tests touching Django, database, views, commands, or IO.

    Each test must have exactly one of these markers.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            markers = []
            if has_unit:
                markers.append("unit")
            if has_integration:
                markers.append("integration")
            invalid.append(f"{item.nodeid} (markers={markers or 'none'})")

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )
