"""Minimal smoke tests for project scaffolding."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration


def test_analysis_engine_imports() -> None:
    """Import the analysis package and verify the public entry points exist."""

    import analysis

    for name in analysis.__all__:
        assert callable(getattr(analysis, name))


def test_django_project_loads() -> None:
    """Verify settings register the project apps and analytics defaults."""

    from django.conf import settings

    assert "core.apps.CoreConfig" in settings.INSTALLED_APPS
    assert "gamedata.apps.GameDataConfig" in settings.INSTALLED_APPS
    assert settings.TOWER_ANALYTICS_DISCREPANCY_THRESHOLD == pytest.approx(0.01)
