"""
Core application configuration.
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Shared base models, permissions and helpers."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Core'
