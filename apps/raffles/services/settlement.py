"""Settlement manager: terminal transitions of an order."""

import logging

from django.utils import timezone

from ..exceptions import OrderNotFound, PaymentSignalMismatch
from ..inventory import translate_storage_errors
from ..models import EventLog, Order, RaffleNumber
from .results import SettlementResult

logger = logging.getLogger(__name__)


class SettlementManager:
    """
    pending -> approved, or pending -> rejected | cancelled.

    The order row is moved with a conditional update on ``pending``, so a second
    confirm or cancel of the same order, or a sweep racing with a webhook, finds
    nothing to update and leaves the numbers alone.
    """

    def __init__(self, store):
        self.store = store

    def _get_order(self, order_id):
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    @translate_storage_errors
    def confirm(self, order_id, payment_meta=None, now=None):
        payment_meta = dict(payment_meta or {})
        now = now or timezone.now()
        order = self._get_order(order_id)

        updated = Order.objects.filter(pk=order.pk, payment_status=Order.STATUS_PENDING).update(
            payment_status=Order.STATUS_APPROVED,
            payment_id=str(payment_meta.get('payment_id') or ''),
            payment_method=str(payment_meta.get('payment_method') or ''),
            payment_metadata=payment_meta,
            settled_at=now,
            updated_at=now,
        )
        if not updated:
            order.refresh_from_db(fields=['payment_status'])
            if order.payment_status == Order.STATUS_APPROVED:
                logger.info(f"[SETTLE] Order {order.pk} already approved, nothing to do")
                return SettlementResult(order.pk, order.payment_status, changed=False)

            mismatch = PaymentSignalMismatch(
                order.pk, order.numbers_count, 0, reason=f"order already {order.payment_status}"
            )
            self._report_mismatch(order, mismatch, payment_meta)
            return SettlementResult(order.pk, order.payment_status, changed=False, mismatch=mismatch)

        sold = []
        for number in self.store.numbers_held_by(order.raffle_id, order.pk, [RaffleNumber.STATUS_RESERVED]):
            if self.store.compare_and_set_status(
                order.raffle_id,
                number,
                expected_status=RaffleNumber.STATUS_RESERVED,
                new_status=RaffleNumber.STATUS_SOLD,
                timestamp=now,
                expected_holder=order.pk,
            ):
                sold.append(number)

        mismatch = None
        if len(sold) != order.numbers_count:
            mismatch = PaymentSignalMismatch(order.pk, order.numbers_count, len(sold))
            self._report_mismatch(order, mismatch, payment_meta)

        EventLog.record(
            EventLog.PAYMENT_CONFIRMED,
            raffle_id=order.raffle_id,
            order_ref=order.pk,
            numbers=sold,
            payment=payment_meta,
        )
        logger.info(f"[SETTLE] Order {order.pk} approved, sold {sold}")
        return SettlementResult(order.pk, Order.STATUS_APPROVED, changed=True, numbers=sold, mismatch=mismatch)

    @translate_storage_errors
    def cancel(self, order_id, status=Order.STATUS_CANCELLED, event_type=EventLog.PAYMENT_CANCELLED,
               reason='', now=None):
        if status not in Order.FAILED_STATUSES:
            raise ValueError(f"Cannot cancel an order into status {status!r}")
        now = now or timezone.now()
        order = self._get_order(order_id)

        updated = Order.objects.filter(pk=order.pk, payment_status=Order.STATUS_PENDING).update(
            payment_status=status,
            settled_at=now,
            updated_at=now,
        )
        if not updated:
            order.refresh_from_db(fields=['payment_status'])
            if order.is_approved and event_type != EventLog.RESERVATION_EXPIRED:
                # Approved orders are terminal; a later negative payment signal is
                # left for manual reconciliation and the sold numbers stay sold.
                mismatch = PaymentSignalMismatch(
                    order.pk, order.numbers_count, order.numbers_count,
                    reason=f"{status} signal for an approved order",
                )
                self._report_mismatch(order, mismatch, {'status': status, 'reason': reason})
                return SettlementResult(order.pk, order.payment_status, changed=False, mismatch=mismatch)

            logger.info(f"[SETTLE] Order {order.pk} already {order.payment_status}, cancel ignored")
            return SettlementResult(order.pk, order.payment_status, changed=False)

        released = []
        for number in self.store.numbers_held_by(order.raffle_id, order.pk, [RaffleNumber.STATUS_RESERVED]):
            if self.store.compare_and_set_status(
                order.raffle_id,
                number,
                expected_status=RaffleNumber.STATUS_RESERVED,
                new_status=RaffleNumber.STATUS_AVAILABLE,
                expected_holder=order.pk,
            ):
                released.append(number)

        EventLog.record(
            event_type,
            raffle_id=order.raffle_id,
            order_ref=order.pk,
            numbers=released,
            status=status,
            reason=reason,
        )
        logger.info(f"[SETTLE] Order {order.pk} {status}, released {released}")
        return SettlementResult(order.pk, status, changed=True, numbers=released)

    def _report_mismatch(self, order, mismatch, payment_meta):
        # Money and inventory disagree:
        # recorded for manual reconciliation, never auto-remediated.
        logger.error(f"[SETTLE] Payment signal mismatch: {mismatch}")
        EventLog.record(
            EventLog.PAYMENT_MISMATCH,
            raffle_id=order.raffle_id,
            order_ref=order.pk,
            expected=mismatch.expected,
            settled=mismatch.actual,
            reason=mismatch.reason,
            payment=payment_meta,
        )
