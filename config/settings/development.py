"""
Development settings for the Rifa Escolar project.

These settings are suitable for local development environment.
"""

from .base import *  # noqa
from .base import REST_FRAMEWORK, config

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

# Database - Use PostgreSQL
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': config('DB_NAME', default='rifas_db'),
        'USER': config('DB_USER', default='rifas_user'),
        'PASSWORD': config('DB_PASSWORD', default='rifas_password'),
        'HOST': config('DB_HOST', default='db'),
        'PORT': config('DB_PORT', default='5432'),
    }
}

# Cache
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

# Without an active raffle, answer with simulated data so the UI can be developed
RAFFLE_SIMULATION_MODE = config('RAFFLE_SIMULATION_MODE', default=True, cast=bool)

# CORS settings
CORS_ALLOW_ALL_ORIGINS = True  # In development only

# Browsable API for local debugging
REST_FRAMEWORK['DEFAULT_RENDERER_CLASSES'] = (
    'rest_framework.renderers.JSONRenderer',
    'rest_framework.renderers.BrowsableAPIRenderer',
)

CSRF_COOKIE_SECURE = False
