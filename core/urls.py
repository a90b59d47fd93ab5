"""URL configuration for core views."""

from __future__ import annotations

from django.urls import path

from core import views

app_name = "core"

urlpatterns = [
    path("runs/", views.runs_api, name="runs"),
    path("source-analysis/", views.source_analysis_api, name="source_analysis"),
    path("tier-stats/", views.tier_stats_api, name="tier_stats"),
    path("tier-trends/", views.tier_trends_api, name="tier_trends"),
    path("coverage/", views.coverage_api, name="coverage"),
    path("time-series/", views.time_series_api, name="time_series"),
    path("activity-heatmap/", views.activity_heatmap_api, name="activity_heatmap"),
    path("deaths/", views.deaths_api, name="deaths"),
]
