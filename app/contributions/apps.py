"""
Contributions app configuration.

Holds the member contribution records that payments settle. Only the
surface the payments app consumes lives here.
"""

from django.apps import AppConfig


class ContributionsConfig(AppConfig):
    """Configuration for the contributions application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "contributions"
    verbose_name = "Contributions"
