"""Exceptions raised by the analytics engine.

The engine degrades silently on missing or malformed run data. These errors
are reserved for configuration misuse by callers (unknown identifiers or
unsupported options), never for the shape of the data itself.
"""

from __future__ import annotations


class UnknownCategoryError(KeyError):
    """Raised when a source category id is not configured."""

    def __init__(self, category_id: str) -> None:
        """Initialize the error.

        Args:
            category_id: The category id that failed lookup.
        """

        super().__init__(f"Unknown source category: {category_id!r}.")
        self.category_id = category_id


class UnknownMetricError(KeyError):
    """Raised when a coverage metric field name is not configured."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"Unknown metric field: {field_name!r}.")
        self.field_name = field_name


class UnsupportedDurationError(ValueError):
    """Raised when a duration is not valid for the requested operation."""

    def __init__(self, duration: object) -> None:
        super().__init__(f"Unsupported duration: {duration!r}.")
        self.duration = duration
