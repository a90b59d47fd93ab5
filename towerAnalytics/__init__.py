"""Django project package for towerAnalytics."""
