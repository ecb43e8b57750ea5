"""App configuration for the raffles app."""

from django.apps import AppConfig


class RafflesConfig(AppConfig):
    """Configuration for the raffles app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.raffles'
    verbose_name = 'Rifas'
