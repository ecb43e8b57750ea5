"""
Celery configuration for the Rifa Escolar platform.

Handles the periodic release of expired raffle number holds so that numbers
abandoned mid-checkout return to the pool without any buyer action.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('rifas')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

# Periodic tasks schedule
app.conf.beat_schedule = {
    # Critical: release expired holds and pending purchases
    'release-expired-reservations': {
        'task': 'apps.raffles.tasks.release_expired_reservations',
        'schedule': crontab(minute='*'),  # Every minute
        'options': {
            'queue': 'critical',
            'routing_key': 'critical.release_reservations',
        }
    },

    # Retry payment notifications that failed to process
    'reprocess-failed-webhooks': {
        'task': 'payment_processor.tasks.reprocess_failed_webhooks',
        'schedule': crontab(minute='*/10'),  # Every 10 minutes
        'options': {
            'queue': 'default',
            'routing_key': 'default.webhooks',
        }
    },
}

app.conf.task_routes = {
    'apps.raffles.tasks.release_expired_reservations': {'queue': 'critical'},
    'payment_processor.tasks.reprocess_failed_webhooks': {'queue': 'default'},
}

app.conf.update(
    enable_utc=True,

    # Task execution settings
    task_soft_time_limit=240,
    task_time_limit=300,
    task_acks_late=True,       # Acknowledge after task completion
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    worker_max_tasks_per_child=1000,

    task_default_queue='default',
    task_default_exchange='default',
    task_default_exchange_type='direct',
    task_default_routing_key='default',
)
