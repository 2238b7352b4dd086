"""Bars app configuration."""

from django.apps import AppConfig


class BarsConfig(AppConfig):
    """Configuration for the bars application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "bars"
    verbose_name = "Bars"
