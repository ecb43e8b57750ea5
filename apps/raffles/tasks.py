"""
Celery tasks for the raffles app.
"""

import logging

from celery import shared_task

from apps.raffles.exceptions import StorageUnavailable
from apps.raffles.services import get_engine

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def release_expired_reservations(self):
    """
    Release holds and pending orders older than RAFFLE_HOLD_MINUTES.

    Scheduled by Celery beat every minute; safe to overlap with itself.
    """
    try:
        result = get_engine().sweep_expired()
    except StorageUnavailable as exc:
        logger.error(f"[SWEEP] Storage unavailable, retrying: {exc}")
        raise self.retry(exc=exc, countdown=30 * (self.request.retries + 1))

    if result.failed_order_ids:
        logger.warning(f"[SWEEP] Orders that could not be expired: {result.failed_order_ids}")
    return result.as_dict()
