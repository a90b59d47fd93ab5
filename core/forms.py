"""Forms for core API workflows.

Import needs a paste form for raw Battle Report text; every analytics
endpoint validates its query string through a filter form that converts the
cleaned data into the matching analysis filter DTO.
"""

from __future__ import annotations

import re
from datetime import datetime, time, timezone

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError

from analysis.categories import (
    Duration,
    RunType,
    TierStatsAggregation,
    TrendsAggregation,
)
from analysis.coverage import COVERAGE_METRICS
from analysis.dto import (
    ActiveHours,
    CoverageReportFilters,
    SourceAnalysisFilters,
    TierStatsColumnConfig,
    TierTrendsFilters,
    TimeSeriesFilters,
)
from analysis.source_config import SOURCE_CATEGORIES, default_run_type_for_category
from analysis.tier_stats import DEFAULT_TIER_STATS_COLUMNS
from core.services import validate_battle_report

_RUN_TYPE_CHOICES = (("all", "All runs"),) + tuple(
    (run_type.value, run_type.value.title()) for run_type in RunType
)
_DURATION_CHOICES = tuple((duration.value, duration.value.title()) for duration in Duration)


def _tier_filter(value: int | None) -> int | str:
    return "all" if value is None else value


def _run_type_filter(raw: str | None, default: str = "all") -> RunType | str:
    value = raw or default
    return value if value == "all" else RunType(value)


class BattleReportImportForm(forms.Form):
    """Validate user-submitted raw Battle Report text."""

    _REQUIRED_HEADER_SEPARATOR = r"(?:[ \t]*:[ \t]*|\t+)"

    raw_text = forms.CharField(
        label="Battle Report",
        widget=forms.Textarea(attrs={"rows": 12, "cols": 80}),
        help_text="Paste exactly one Battle Report from The Tower.",
    )
    run_type = forms.ChoiceField(
        required=False,
        choices=(("", "Detect from tier"),) + _RUN_TYPE_CHOICES[1:],
        label="Run type",
        help_text="Override when the tier label does not reveal a tournament or milestone run.",
    )

    def clean_raw_text(self) -> str:
        """Validate that the input holds the headers of exactly one report.

        The parsed metadata must also fit a GameRun, so tier labels longer
        than the column or negative waves are rejected here rather than on
        save.

        Returns:
            The raw Battle Report text as entered by the user.
        """

        raw_text = self.cleaned_data.get("raw_text") or ""
        validation_text = (
            raw_text.replace("\r\n", "\n")
            .replace("\r", "\n")
            .replace("\ufeff", "")
            .replace("\u200b", "")
        )

        patterns = {
            "Tier": rf"(?im)^[^\S\n]*Tier{self._REQUIRED_HEADER_SEPARATOR}",
            "Wave": rf"(?im)^[^\S\n]*Wave{self._REQUIRED_HEADER_SEPARATOR}",
            "Real Time": rf"(?im)^[^\S\n]*Real Time{self._REQUIRED_HEADER_SEPARATOR}",
        }
        counts = {label: len(re.findall(pattern, validation_text)) for label, pattern in patterns.items()}
        missing = [label for label, count in counts.items() if count == 0]
        if missing:
            raise forms.ValidationError(f"Paste exactly one Battle Report ({', '.join(missing)} missing).")

        duplicates = [label for label, count in counts.items() if count > 1]
        if duplicates:
            raise forms.ValidationError(f"Duplicate headers detected: {', '.join(duplicates)}.")

        try:
            validate_battle_report(raw_text)
        except ValidationError as exc:
            raise forms.ValidationError(
                [f"{name}: {message}" for name, messages in exc.message_dict.items() for message in messages]
            ) from exc
        return raw_text

    def selected_run_type(self) -> RunType | None:
        """Return the run type override, or None to detect it."""

        raw = self.cleaned_data.get("run_type") or ""
        return RunType(raw) if raw else None


class SourceAnalysisFilterForm(forms.Form):
    """Validate source breakdown filters."""

    category = forms.ChoiceField(
        choices=tuple((category.id, category.name) for category in SOURCE_CATEGORIES.values()),
        label="Category",
    )
    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")
    tier = forms.IntegerField(required=False, min_value=1, label="Tier")
    duration = forms.ChoiceField(required=False, choices=_DURATION_CHOICES, label="Duration")
    quantity = forms.IntegerField(required=False, min_value=1, max_value=365, label="Periods")

    def to_filters(self) -> SourceAnalysisFilters:
        """Return the cleaned filters, defaulting the run type per category."""

        data = self.cleaned_data
        category_id: str = data["category"]
        run_type = data.get("run_type") or default_run_type_for_category(category_id)
        return SourceAnalysisFilters(
            category=category_id,
            run_type=run_type if run_type == "all" else RunType(run_type),
            tier=_tier_filter(data.get("tier")),
            duration=Duration(data.get("duration") or Duration.per_run),
            quantity=data.get("quantity") or settings.TOWER_ANALYTICS_DEFAULT_QUANTITY,
        )


class TierStatsFilterForm(forms.Form):
    """Validate tier stats columns and aggregation.

    `columns` is a comma-separated list of field names; suffix `:hourly` to
    request the hourly rate of a field (e.g. `wave,coinsEarned:hourly`).
    """

    columns = forms.CharField(required=False, label="Columns")
    aggregation = forms.ChoiceField(
        required=False,
        choices=tuple((aggregation.value, aggregation.value.upper()) for aggregation in TierStatsAggregation),
        label="Aggregation",
    )
    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")

    def clean_columns(self) -> tuple[TierStatsColumnConfig, ...]:
        """Parse the column list, falling back to the default columns."""

        raw = (self.cleaned_data.get("columns") or "").strip()
        if not raw:
            return DEFAULT_TIER_STATS_COLUMNS

        columns: list[TierStatsColumnConfig] = []
        for token in raw.split(","):
            field_name, _, suffix = token.strip().partition(":")
            if not field_name:
                continue
            if suffix and suffix != "hourly":
                raise forms.ValidationError(f"Unknown column option `{suffix}`.")
            columns.append(TierStatsColumnConfig(field_name, show_hourly_rate=suffix == "hourly"))
        if not columns:
            raise forms.ValidationError("Select at least one column.")
        return tuple(columns)

    def selected_aggregation(self) -> TierStatsAggregation:
        """Return the chosen aggregation (MAX by default)."""

        return TierStatsAggregation(self.cleaned_data.get("aggregation") or TierStatsAggregation.max)

    def selected_run_type(self) -> RunType | str:
        """Return `all` or the chosen run type."""

        return _run_type_filter(self.cleaned_data.get("run_type"))


class TierTrendsFilterForm(forms.Form):
    """Validate tier trend filters."""

    tier = forms.IntegerField(required=False, min_value=0, label="Tier", help_text="0 for all tiers.")
    duration = forms.ChoiceField(required=False, choices=_DURATION_CHOICES, label="Duration")
    quantity = forms.IntegerField(required=False, min_value=2, max_value=52, label="Periods")
    aggregation = forms.ChoiceField(
        required=False,
        choices=(("", "Default"),)
        + tuple((aggregation.value, aggregation.value.title()) for aggregation in TrendsAggregation),
        label="Aggregation",
    )
    change_threshold = forms.FloatField(required=False, min_value=0, label="Change threshold (%)")
    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")

    def to_filters(self) -> TierTrendsFilters:
        """Return the cleaned trend filters."""

        data = self.cleaned_data
        aggregation = data.get("aggregation") or None
        return TierTrendsFilters(
            tier=data.get("tier") or 0,
            duration=Duration(data.get("duration") or Duration.per_run),
            quantity=data.get("quantity") or 5,
            aggregation_type=TrendsAggregation(aggregation) if aggregation else None,
            change_threshold_percent=data.get("change_threshold") or 0.0,
        )

    def selected_run_type(self) -> RunType | str:
        """Return `all` or the chosen run type (farm by default)."""

        return _run_type_filter(self.cleaned_data.get("run_type"), RunType.farm.value)


class CoverageFilterForm(forms.Form):
    """Validate coverage report filters."""

    metrics = forms.MultipleChoiceField(
        required=False,
        choices=tuple((metric.field_name, metric.label) for metric in COVERAGE_METRICS),
        label="Metrics",
    )
    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")
    tier = forms.IntegerField(required=False, min_value=1, label="Tier")
    duration = forms.ChoiceField(required=False, choices=_DURATION_CHOICES, label="Duration")
    period_count = forms.IntegerField(required=False, min_value=1, max_value=365, label="Periods")

    def to_filters(self) -> CoverageReportFilters:
        """Return the cleaned coverage filters, defaulting to farm runs by day."""

        data = self.cleaned_data
        defaults = CoverageReportFilters()
        run_type = data.get("run_type") or defaults.run_type
        return CoverageReportFilters(
            selected_metrics=tuple(data.get("metrics") or defaults.selected_metrics),
            run_type=run_type if run_type == "all" else RunType(run_type),
            tier=_tier_filter(data.get("tier")),
            duration=Duration(data.get("duration") or defaults.duration),
            period_count=data.get("period_count") or defaults.period_count,
        )


class TimeSeriesFilterForm(forms.Form):
    """Validate time series filters."""

    field = forms.CharField(required=False, max_length=100, label="Field")
    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")
    tier = forms.IntegerField(required=False, min_value=1, label="Tier")
    duration = forms.ChoiceField(required=False, choices=_DURATION_CHOICES, label="Duration")
    per_hour = forms.BooleanField(required=False, label="Per hour")
    quantity = forms.IntegerField(required=False, min_value=1, max_value=365, label="Points")
    moving_average = forms.IntegerField(
        required=False,
        min_value=2,
        max_value=52,
        label="Moving average window",
        help_text="Points per window; leave empty for no trend line.",
    )
    percent_change = forms.BooleanField(required=False, label="Percent change")

    def to_filters(self) -> TimeSeriesFilters:
        """Return the cleaned series filters (coins earned per run by default)."""

        data = self.cleaned_data
        defaults = TimeSeriesFilters()
        return TimeSeriesFilters(
            field_name=data.get("field") or defaults.field_name,
            run_type=_run_type_filter(data.get("run_type")),
            tier=_tier_filter(data.get("tier")),
            duration=Duration(data.get("duration") or defaults.duration),
            per_hour=bool(data.get("per_hour")),
            quantity=data.get("quantity"),
            moving_average_window=data.get("moving_average"),
            include_percent_change=bool(data.get("percent_change")),
        )


class ActivityHeatmapFilterForm(forms.Form):
    """Validate the heatmap week and optional play window."""

    week = forms.DateField(required=False, label="Week of", help_text="Any day of the week; defaults to today.")
    active_start = forms.IntegerField(required=False, min_value=0, max_value=23, label="Active from (hour)")
    active_end = forms.IntegerField(required=False, min_value=0, max_value=23, label="Active until (hour)")
    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")

    def clean(self) -> dict:
        """Require both ends of the play window or neither."""

        cleaned = super().clean()
        start = cleaned.get("active_start")
        end = cleaned.get("active_end")
        if (start is None) != (end is None):
            raise forms.ValidationError("Set both active hours or neither.")
        return cleaned

    def week_of(self) -> datetime | None:
        """Return midnight UTC of the chosen day, or None for the current week."""

        day = self.cleaned_data.get("week")
        return None if day is None else datetime.combine(day, time.min, tzinfo=timezone.utc)

    def active_hours(self) -> ActiveHours | None:
        """Return the play window, or None when not set."""

        start = self.cleaned_data.get("active_start")
        end = self.cleaned_data.get("active_end")
        if start is None or end is None:
            return None
        return ActiveHours(start_hour=start, end_hour=end)

    def selected_run_type(self) -> RunType | str:
        """Return `all` or the chosen run type."""

        return _run_type_filter(self.cleaned_data.get("run_type"))


class DeathsFilterForm(forms.Form):
    """Validate the death cause breakdown filters."""

    run_type = forms.ChoiceField(required=False, choices=_RUN_TYPE_CHOICES, label="Run type")

    def selected_run_type(self) -> RunType | str:
        """Return `all` or the chosen run type."""

        return _run_type_filter(self.cleaned_data.get("run_type"))
