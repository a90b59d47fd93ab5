"""Database models for imported game runs."""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError
from django.db import models

from analysis.categories import RunType


class GameRun(models.Model):
    """One imported game session and its typed report fields.

    Analytics treat rows as read-only; a run is only ever created on import
    or deleted as a whole.
    """

    class RunTypeChoices(models.TextChoices):
        FARM = RunType.farm.value, "Farm"
        TOURNAMENT = RunType.tournament.value, "Tournament"
        MILESTONE = RunType.milestone.value, "Milestone"

    run_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    battle_date = models.DateTimeField(db_index=True)
    tier = models.PositiveSmallIntegerField(null=True, blank=True, db_index=True)
    tier_label = models.CharField(
        max_length=16,
        blank=True,
        default="",
        help_text="Tier exactly as written in the report (e.g. `11+` for tournaments).",
    )
    run_type = models.CharField(
        max_length=16,
        choices=RunTypeChoices.choices,
        default=RunTypeChoices.FARM,
        db_index=True,
    )
    wave = models.PositiveIntegerField(null=True, blank=True)
    real_time_seconds = models.PositiveIntegerField(default=0)
    fields = models.JSONField(default=dict, blank=True)
    raw_text = models.TextField(blank=True)
    checksum = models.CharField(max_length=64, unique=True)
    imported_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Game Run"
        verbose_name_plural = "Game Runs"
        ordering = ["-battle_date"]

    def __str__(self) -> str:
        """Return a concise display string for admin/debug usage."""

        return f"GameRun(tier={self.tier}, wave={self.wave}, battle_date={self.battle_date})"

    def clean(self) -> None:
        """Validate that the stored field payload is a mapping."""

        if not isinstance(self.fields, dict):
            raise ValidationError("GameRun.fields must be a JSON object.")

    def save(self, *args, **kwargs) -> None:
        """Save after validating the field payload.

        Checksum uniqueness is left to the database so concurrent imports of
        the same report surface as an IntegrityError.
        """

        self.full_clean(validate_unique=False)
        super().save(*args, **kwargs)
