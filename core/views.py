"""JSON views exposing run import and the analytics reports."""

from __future__ import annotations

import logging

from django import forms
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods

from analysis.deaths import radar_rows, radar_scale_max
from analysis.engine import runs_from_records
from analysis.tier_stats import (
    AGGREGATION_DESCRIPTIONS,
    AGGREGATION_LABELS,
    calculate_dynamic_tier_stats,
    calculate_summary_stats,
    column_display_name,
    discover_available_fields,
    get_cell_value,
)
from core import services
from core.forms import (
    ActivityHeatmapFilterForm,
    BattleReportImportForm,
    CoverageFilterForm,
    DeathsFilterForm,
    SourceAnalysisFilterForm,
    TierStatsFilterForm,
    TierTrendsFilterForm,
    TimeSeriesFilterForm,
)
from core.serializers import run_reference, to_json

logger = logging.getLogger(__name__)


def _invalid(form: forms.Form) -> JsonResponse:
    """Return a 400 response listing form errors."""

    logger.warning("Rejected %s input: %s", type(form).__name__, form.errors.as_json())
    return JsonResponse({"errors": form.errors.get_json_data()}, status=400)


@require_http_methods(["GET", "POST"])
def runs_api(request: HttpRequest) -> JsonResponse:
    """List stored runs (GET) or import a pasted Battle Report (POST)."""

    if request.method == "POST":
        form = BattleReportImportForm(request.POST)
        if not form.is_valid():
            return _invalid(form)
        game_run, created = services.ingest_battle_report(
            form.cleaned_data["raw_text"],
            run_type=form.selected_run_type(),
        )
        runs = runs_from_records([game_run])
        return JsonResponse(
            {"created": created, "run": run_reference(runs[0]) if runs else None},
            status=201 if created else 200,
        )

    runs = services.load_runs()
    return JsonResponse({"count": len(runs), "runs": [run_reference(run) for run in reversed(runs)]})


@require_GET
def source_analysis_api(request: HttpRequest) -> JsonResponse:
    """Return the source breakdown for a category."""

    form = SourceAnalysisFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)
    return JsonResponse(to_json(services.source_analysis(form.to_filters())))


@require_GET
def tier_stats_api(request: HttpRequest) -> JsonResponse:
    """Return per-tier statistics with the cells for the chosen aggregation."""

    form = TierStatsFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)

    columns = form.cleaned_data["columns"]
    aggregation = form.selected_aggregation()
    run_type = form.selected_run_type()
    runs = services.load_runs(run_type=run_type)
    available = discover_available_fields(runs)
    stats = calculate_dynamic_tier_stats(runs, columns)

    return JsonResponse(
        {
            "aggregation": aggregation.value,
            "aggregation_label": AGGREGATION_LABELS[aggregation],
            "aggregation_description": AGGREGATION_DESCRIPTIONS[aggregation],
            "columns": [
                {
                    "field_name": column.field_name,
                    "hourly": column.show_hourly_rate,
                    "header": column_display_name(column.field_name, column.show_hourly_rate, available),
                }
                for column in columns
            ],
            "rows": [
                {
                    "tier": tier.tier,
                    "run_count": tier.run_count,
                    "cells": [
                        get_cell_value(tier, column.field_name, column.show_hourly_rate, aggregation)
                        for column in columns
                    ],
                }
                for tier in stats
            ],
            "summary": to_json(calculate_summary_stats(stats, columns)),
            "available_fields": to_json(available),
        }
    )


@require_GET
def tier_trends_api(request: HttpRequest) -> JsonResponse:
    """Return field trends for a tier."""

    form = TierTrendsFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)
    trends = services.tier_trends(form.to_filters(), run_type=form.selected_run_type())
    return JsonResponse(to_json(trends))


@require_GET
def coverage_api(request: HttpRequest) -> JsonResponse:
    """Return the enemy coverage report."""

    form = CoverageFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)
    return JsonResponse(to_json(services.coverage_analysis(form.to_filters())))


@require_GET
def time_series_api(request: HttpRequest) -> JsonResponse:
    """Return a field's time series with optional overlays."""

    form = TimeSeriesFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)
    return JsonResponse(to_json(services.time_series(form.to_filters())))


@require_GET
def activity_heatmap_api(request: HttpRequest) -> JsonResponse:
    """Return the hour-by-hour activity grid of a week and its summary."""

    form = ActivityHeatmapFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)
    grid, summary = services.activity_heatmap(
        form.week_of(),
        active_hours=form.active_hours(),
        run_type=form.selected_run_type(),
    )
    return JsonResponse({"grid": to_json(grid), "summary": to_json(summary)})


@require_GET
def deaths_api(request: HttpRequest) -> JsonResponse:
    """Return death causes per tier, plus the same data pivoted for a radar chart."""

    form = DeathsFilterForm(request.GET)
    if not form.is_valid():
        return _invalid(form)
    tiers = services.killed_by(run_type=form.selected_run_type())
    return JsonResponse(
        {
            "tiers": to_json(tiers),
            "radar": to_json(radar_rows(tiers)),
            "radar_max": radar_scale_max(tiers),
        }
    )
