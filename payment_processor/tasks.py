"""
Celery tasks for the payment processor.
"""

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from .models import PaymentWebhook
from .services import process_webhook

logger = logging.getLogger(__name__)

MAX_WEBHOOK_ATTEMPTS = 5


@shared_task
def reprocess_failed_webhooks(max_age_hours=24):
    """Retry payment notifications whose processing failed."""
    since = timezone.now() - timedelta(hours=max_age_hours)
    webhooks = PaymentWebhook.objects.filter(
        status='failed',
        attempts__lt=MAX_WEBHOOK_ATTEMPTS,
        created_at__gte=since,
    ).order_by('created_at')

    processed = failed = 0
    for webhook in webhooks:
        try:
            process_webhook(webhook)
            processed += 1
        except Exception as e:
            logger.error(f"[WEBHOOK] Reprocessing {webhook.id} failed again: {e}")
            failed += 1

    if processed or failed:
        logger.info(f"[WEBHOOK] Reprocessed failed webhooks: {processed} ok, {failed} failed")
    return {'processed': processed, 'failed': failed}
