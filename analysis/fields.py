"""Typed field access for runs.

Historical field renames are resolved through an explicit alias table rather
than by migrating stored data: a lookup tries the primary field name first and
then each alias in order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .dto import Run

FieldAliasMap = Mapping[str, Sequence[str]]


def is_numeric_value(value: object) -> bool:
    """Return True when a field value is a usable number (bools excluded)."""

    return isinstance(value, int | float) and not isinstance(value, bool)


def numeric_field_value(
    run: Run,
    field_name: str,
    *,
    aliases: FieldAliasMap | None = None,
) -> float | None:
    """Return the first numeric value for a field or its aliases.

    Args:
        run: Run to read from.
        field_name: Primary field name.
        aliases: Optional mapping of primary field name to fallback names.

    Returns:
        The numeric value, or None when neither the field nor any alias holds
        a number.
    """

    candidates = [field_name]
    if aliases is not None:
        candidates.extend(aliases.get(field_name, ()))

    for candidate in candidates:
        field = run.fields.get(candidate)
        if field is not None and is_numeric_value(field.value):
            return float(field.value)
    return None


def extract_field_value(
    run: Run,
    field_name: str,
    *,
    aliases: FieldAliasMap | None = None,
) -> float:
    """Extract a numeric field value, resolving aliases and defaulting to 0.

    Args:
        run: Run to read from.
        field_name: Primary field name.
        aliases: Optional mapping of primary field name to fallback names.

    Returns:
        The numeric value, or 0.0 when missing or non-numeric. Never raises.
    """

    value = numeric_field_value(run, field_name, aliases=aliases)
    return 0.0 if value is None else value


def text_field_value(run: Run, field_name: str) -> str | None:
    """Return a text field's stripped value, or None when missing or blank."""

    field = run.fields.get(field_name)
    if field is None or not isinstance(field.value, str):
        return None
    return field.value.strip() or None
