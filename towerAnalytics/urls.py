"""URL configuration for towerAnalytics."""

from __future__ import annotations

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("api/", include("core.urls")),
    path("admin/", admin.site.urls),
]
