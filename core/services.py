"""Service-layer functions for the core app.

Services in `core` coordinate Django persistence concerns (ORM, transactions)
with pure parsing/analysis modules.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from analysis.categories import RunType
from analysis.coverage import calculate_coverage_analysis
from analysis.deaths import calculate_killed_by
from analysis.dto import (
    ActiveHours,
    CoverageAnalysisData,
    CoverageReportFilters,
    HeatmapGrid,
    HeatmapSummary,
    Run,
    RunTypeFilter,
    SourceAnalysisData,
    SourceAnalysisFilters,
    TierKilledByData,
    TierTrendsData,
    TierTrendsFilters,
    TimeSeriesData,
    TimeSeriesFilters,
)
from analysis.engine import fields_to_json, runs_from_records
from analysis.heatmap import summarize_week
from analysis.source_analysis import calculate_source_analysis
from analysis.source_config import get_category
from analysis.tier_trends import calculate_tier_trends
from analysis.time_series import calculate_time_series
from core.parsers.battle_report import ParsedBattleReport, parse_battle_report
from gamedata.models import GameRun

logger = logging.getLogger(__name__)


def ingest_battle_report(
    raw_text: str, *, run_type: RunType | None = None
) -> tuple[GameRun, bool]:
    """Ingest a Battle Report, rejecting duplicates by checksum.

    Args:
        raw_text: Raw Battle Report text as pasted by the user.
        run_type: Manual override for the run type; when omitted the type
            detected from the tier label is used.

    Returns:
        A tuple of (game_run, created) where `created` is False when the report
        is a duplicate.

    Raises:
        ValidationError: When the parsed metadata does not fit a GameRun
            (e.g. an overlong tier label or a negative wave).

    Notes:
        Reports without a parseable battle date are stamped with the import
        time.
    """

    parsed = parse_battle_report(raw_text)
    game_run = _game_run_from_report(parsed, raw_text, run_type=run_type)
    try:
        with transaction.atomic():
            game_run.save()
    except IntegrityError:
        game_run = GameRun.objects.get(checksum=parsed.checksum)
        logger.info("Skipped duplicate Battle Report %s.", parsed.checksum[:10])
        return game_run, False

    logger.info(
        "Imported %s run %s (tier %s, %d fields).",
        game_run.run_type,
        game_run.run_id,
        game_run.tier_label or "-",
        len(parsed.fields),
    )
    return game_run, True


def validate_battle_report(raw_text: str) -> None:
    """Check that a report parses into a storable GameRun without saving it.

    Raises:
        ValidationError: Keyed by the GameRun field that rejected the value.
    """

    parsed = parse_battle_report(raw_text)
    _game_run_from_report(parsed, raw_text).full_clean(validate_unique=False)


def _game_run_from_report(
    parsed: ParsedBattleReport, raw_text: str, *, run_type: RunType | None = None
) -> GameRun:
    return GameRun(
        battle_date=parsed.battle_date or timezone.now(),
        tier=parsed.tier,
        tier_label=parsed.tier_label,
        run_type=run_type or parsed.run_type,
        wave=parsed.wave,
        real_time_seconds=parsed.real_time_seconds,
        fields=fields_to_json(parsed.fields),
        raw_text=raw_text,
        checksum=parsed.checksum,
    )


def reparse_game_run(game_run: GameRun) -> bool:
    """Re-derive a stored run from its raw text.

    Args:
        game_run: Persisted run to refresh in memory.

    Returns:
        True when any derived column changed. The row is not saved; callers
        decide whether to persist.
    """

    parsed = parse_battle_report(game_run.raw_text)
    updates = {
        "tier": parsed.tier,
        "tier_label": parsed.tier_label,
        "wave": parsed.wave,
        "real_time_seconds": parsed.real_time_seconds,
        "fields": fields_to_json(parsed.fields),
    }
    if parsed.battle_date is not None:
        updates["battle_date"] = parsed.battle_date

    changed = False
    for name, value in updates.items():
        if getattr(game_run, name) != value:
            setattr(game_run, name, value)
            changed = True
    return changed


def load_runs(*, run_type: RunTypeFilter = "all", tier: int | str = "all") -> tuple[Run, ...]:
    """Load persisted runs as analysis DTOs, oldest first.

    Args:
        run_type: `all` or a run type to restrict the query to.
        tier: `all` or a tier number to restrict the query to.
    """

    queryset = GameRun.objects.order_by("battle_date", "id")
    if run_type != "all":
        queryset = queryset.filter(run_type=run_type)
    if tier != "all":
        queryset = queryset.filter(tier=tier)
    return runs_from_records(queryset)


def source_analysis(filters: SourceAnalysisFilters) -> SourceAnalysisData:
    """Compute a source breakdown over every stored run.

    Raises:
        UnknownCategoryError: When `filters.category` is not configured.
    """

    category = get_category(filters.category)
    return calculate_source_analysis(
        load_runs(),
        category,
        filters,
        discrepancy_threshold=settings.TOWER_ANALYTICS_DISCREPANCY_THRESHOLD,
    )


def tier_trends(filters: TierTrendsFilters, *, run_type: RunTypeFilter = RunType.farm) -> TierTrendsData:
    """Compute field trends for a tier over recent periods."""

    return calculate_tier_trends(load_runs(), filters, run_type=run_type)


def coverage_analysis(filters: CoverageReportFilters) -> CoverageAnalysisData:
    """Compute the coverage report over every stored run.

    Raises:
        UnknownMetricError: When a selected metric is not configured.
    """

    return calculate_coverage_analysis(load_runs(), filters)


def time_series(filters: TimeSeriesFilters) -> TimeSeriesData:
    """Compute a field's time series; the current week/month ends today.

    Raises:
        ValueError: When the moving average window is smaller than 2.
    """

    return calculate_time_series(load_runs(), filters, reference=timezone.now())


def activity_heatmap(
    week_of: datetime | None = None,
    *,
    active_hours: ActiveHours | None = None,
    run_type: RunTypeFilter = "all",
) -> tuple[HeatmapGrid, HeatmapSummary]:
    """Build the activity grid and summary for a week (the current one by default)."""

    return summarize_week(load_runs(run_type=run_type), week_of or timezone.now(), active_hours)


def killed_by(*, run_type: RunTypeFilter = "all") -> tuple[TierKilledByData, ...]:
    """Count death causes per tier over stored runs."""

    return calculate_killed_by(load_runs(run_type=run_type))
