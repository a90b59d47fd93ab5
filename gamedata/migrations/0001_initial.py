"""Create the GameRun table for imported runs."""

from __future__ import annotations

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="GameRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("run_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("battle_date", models.DateTimeField(db_index=True)),
                ("tier", models.PositiveSmallIntegerField(blank=True, db_index=True, null=True)),
                (
                    "tier_label",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Tier exactly as written in the report (e.g. `11+` for tournaments).",
                        max_length=16,
                    ),
                ),
                (
                    "run_type",
                    models.CharField(
                        choices=[("farm", "Farm"), ("tournament", "Tournament"), ("milestone", "Milestone")],
                        db_index=True,
                        default="farm",
                        max_length=16,
                    ),
                ),
                ("wave", models.PositiveIntegerField(blank=True, null=True)),
                ("real_time_seconds", models.PositiveIntegerField(default=0)),
                ("fields", models.JSONField(blank=True, default=dict)),
                ("raw_text", models.TextField(blank=True)),
                ("checksum", models.CharField(max_length=64, unique=True)),
                ("imported_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Game Run",
                "verbose_name_plural": "Game Runs",
                "ordering": ["-battle_date"],
            },
        ),
    ]
