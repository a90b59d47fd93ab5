"""Admin registrations for GameData models."""

from __future__ import annotations

from django.contrib import admin

from gamedata.models import GameRun


@admin.register(GameRun)
class GameRunAdmin(admin.ModelAdmin):
    """Admin configuration for GameRun."""

    list_display = ("battle_date", "tier_label", "run_type", "wave", "real_time_seconds", "checksum")
    list_filter = ("run_type", "tier")
    search_fields = ("checksum",)
    readonly_fields = ("run_id", "fields", "raw_text", "checksum", "imported_at")
