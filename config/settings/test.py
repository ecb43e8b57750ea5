"""
Test settings for the Rifa Escolar project.

SQLite by default so the suite runs without services; set TEST_DB_ENGINE=postgresql
(plus the DB_* variables) to run the threaded race tests against PostgreSQL.
"""

import os

os.environ.setdefault('SECRET_KEY', 'test-secret-key-not-for-production')

from .base import *  # noqa: E402
from .base import BASE_DIR, config  # noqa: E402

DEBUG = False

if config('TEST_DB_ENGINE', default='sqlite') == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': config('DB_NAME', default='rifas_test'),
            'USER': config('DB_USER', default='postgres'),
            'PASSWORD': config('DB_PASSWORD', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default='5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'test_db.sqlite3',
        }
    }

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

RAFFLE_SIMULATION_MODE = False
CRON_SECRET = 'test-cron-secret'
MERCADOPAGO_ACCESS_TOKEN = 'TEST-access-token'
MERCADOPAGO_WEBHOOK_SECRET = ''
MERCADOPAGO_RETRY_ATTEMPTS = 1

CELERY_TASK_ALWAYS_EAGER = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

LOGGING['root']['level'] = 'WARNING'  # noqa: F405
