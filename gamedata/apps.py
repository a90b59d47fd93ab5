"""Django app configuration for GameData."""

from __future__ import annotations

from django.apps import AppConfig


class GameDataConfig(AppConfig):
    """AppConfig for imported game runs."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "gamedata"

