"""Expiry sweeper: returns expired holds and unpaid orders to the pool."""

import logging
from collections import defaultdict
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from ..inventory import translate_storage_errors
from ..models import EventLog, Order, RaffleNumber
from .results import SweepResult

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Periodic release of holds older than the hold timeout.

    Safe to run concurrently with itself and with buyer-initiated settlement:
    every release is a conditional update, so whoever acts first wins.
    """

    def __init__(self, store, settlement, hold_minutes=None):
        self.store = store
        self.settlement = settlement
        self._hold_minutes = hold_minutes

    @property
    def hold_minutes(self):
        if self._hold_minutes is not None:
            return self._hold_minutes
        return settings.RAFFLE_HOLD_MINUTES

    def cutoff(self, now=None):
        return (now or timezone.now()) - timedelta(minutes=self.hold_minutes)

    @translate_storage_errors
    def expired_order_ids(self, now=None):
        return list(
            Order.objects.filter(
                payment_status=Order.STATUS_PENDING,
                created_at__lte=self.cutoff(now),
            ).order_by('created_at').values_list('pk', flat=True)
        )

    def orphan_holds(self, now=None):
        """Stale reserved numbers whose holder is not an order: (raffle_id, number, holder_ref)."""
        return self.store.stale_reservations(
            self.cutoff(now),
            exclude_holders=Order.objects.values('pk'),
        )

    def sweep(self, now=None):
        now = now or timezone.now()
        result = SweepResult()

        for order_id in self.expired_order_ids(now):
            try:
                outcome = self.settlement.cancel(
                    order_id,
                    status=Order.STATUS_CANCELLED,
                    event_type=EventLog.RESERVATION_EXPIRED,
                    reason='hold timeout',
                    now=now,
                )
            except Exception:
                logger.exception(f"[SWEEP] Failed to expire order {order_id}")
                result.failed_order_ids.append(order_id)
                continue
            if outcome.changed:
                result.cancelled_order_count += 1
                result.released_count += len(outcome.numbers)

        released_by_hold = defaultdict(list)
        for raffle_id, number, holder_ref in self.orphan_holds(now):
            try:
                released = self.store.compare_and_set_status(
                    raffle_id,
                    number,
                    expected_status=RaffleNumber.STATUS_RESERVED,
                    new_status=RaffleNumber.STATUS_AVAILABLE,
                    expected_holder=holder_ref,
                )
            except Exception:
                logger.exception(f"[SWEEP] Failed to release number {number} held by {holder_ref}")
                continue
            if released:
                released_by_hold[(raffle_id, holder_ref)].append(number)
                result.released_count += 1

        for (raffle_id, holder_ref), numbers in released_by_hold.items():
            EventLog.record(
                EventLog.RESERVATION_EXPIRED,
                raffle_id=raffle_id,
                order_ref=holder_ref,
                numbers=numbers,
                reason='orphan hold',
            )

        if result.released_count or result.cancelled_order_count:
            logger.info(
                f"[SWEEP] Cancelled {result.cancelled_order_count} orders, "
                f"released {result.released_count} numbers"
            )
        return result
