"""
Tests for order settlement.
"""

from django.test import TestCase

from apps.raffles.exceptions import OrderNotFound
from apps.raffles.inventory import InventoryStore
from apps.raffles.models import EventLog, Order, RaffleNumber
from apps.raffles.services.orders import OrderManager
from apps.raffles.services.reservations import ReservationManager
from apps.raffles.services.settlement import SettlementManager
from apps.raffles.tests.utils import BUYER, make_raffle


class SettlementManagerTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=50)
        store = InventoryStore()
        hold = ReservationManager(store).reserve(self.raffle.id, [20, 21])
        self.order = OrderManager(store).create_order(
            self.raffle, hold.reservation_id, BUYER, [20, 21], '2000'
        )
        self.settlement = SettlementManager(store)

    def _rows(self):
        return list(RaffleNumber.objects.filter(raffle=self.raffle, number__in=[20, 21]).order_by('number'))

    def test_confirm_sells_numbers(self):
        result = self.settlement.confirm(self.order.id, {'payment_id': '123', 'payment_method': 'visa'})

        self.assertTrue(result.changed)
        self.assertIsNone(result.mismatch)
        self.assertEqual(result.numbers, [20, 21])
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_APPROVED)
        self.assertEqual(self.order.payment_id, '123')
        self.assertIsNotNone(self.order.settled_at)
        for row in self._rows():
            self.assertEqual(row.status, RaffleNumber.STATUS_SOLD)
            self.assertEqual(row.holder_ref, self.order.id)
            self.assertIsNotNone(row.sold_at)

    def test_confirm_is_idempotent(self):
        self.settlement.confirm(self.order.id)
        again = self.settlement.confirm(self.order.id)

        self.assertFalse(again.changed)
        self.assertEqual(again.payment_status, Order.STATUS_APPROVED)
        self.assertEqual(
            EventLog.objects.filter(event_type=EventLog.PAYMENT_CONFIRMED, order_ref=self.order.id).count(), 1
        )

    def test_cancel_releases_numbers(self):
        result = self.settlement.cancel(self.order.id)

        self.assertTrue(result.changed)
        self.assertEqual(result.numbers, [20, 21])
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_CANCELLED)
        for row in self._rows():
            self.assertEqual(row.status, RaffleNumber.STATUS_AVAILABLE)
            self.assertIsNone(row.holder_ref)
            self.assertIsNone(row.reserved_at)
            self.assertIsNone(row.sold_at)

    def test_cancel_is_idempotent(self):
        self.settlement.cancel(self.order.id, status=Order.STATUS_REJECTED)
        again = self.settlement.cancel(self.order.id)

        self.assertFalse(again.changed)
        self.assertEqual(again.payment_status, Order.STATUS_REJECTED)

    def test_reject_after_confirm_is_reported_as_mismatch(self):
        self.settlement.confirm(self.order.id)

        with self.assertLogs('apps.raffles.services.settlement', level='ERROR'):
            result = self.settlement.cancel(self.order.id, status=Order.STATUS_REJECTED, reason='refund')

        self.assertFalse(result.changed)
        self.assertEqual(result.payment_status, Order.STATUS_APPROVED)
        self.assertIsNotNone(result.mismatch)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_APPROVED)
        for row in self._rows():
            self.assertEqual(row.status, RaffleNumber.STATUS_SOLD)
            self.assertEqual(row.holder_ref, self.order.id)
        mismatch = EventLog.objects.get(event_type=EventLog.PAYMENT_MISMATCH, order_ref=self.order.id)
        self.assertEqual(mismatch.data['payment'], {'status': Order.STATUS_REJECTED, 'reason': 'refund'})
        self.assertFalse(
            EventLog.objects.filter(event_type=EventLog.PAYMENT_CANCELLED, order_ref=self.order.id).exists()
        )

    def test_expiry_after_confirm_is_silent(self):
        self.settlement.confirm(self.order.id)
        result = self.settlement.cancel(self.order.id, event_type=EventLog.RESERVATION_EXPIRED)

        self.assertFalse(result.changed)
        self.assertIsNone(result.mismatch)
        self.assertTrue(all(row.status == RaffleNumber.STATUS_SOLD for row in self._rows()))
        self.assertFalse(EventLog.objects.filter(event_type=EventLog.PAYMENT_MISMATCH).exists())

    def test_cancel_rejects_non_failure_status(self):
        with self.assertRaises(ValueError):
            self.settlement.cancel(self.order.id, status=Order.STATUS_APPROVED)

    def test_confirm_after_cancel_is_reported_as_mismatch(self):
        self.settlement.cancel(self.order.id)
        result = self.settlement.confirm(self.order.id, {'payment_id': '999'})

        self.assertFalse(result.changed)
        self.assertIsNotNone(result.mismatch)
        self.assertEqual(result.payment_status, Order.STATUS_CANCELLED)
        self.assertTrue(
            EventLog.objects.filter(event_type=EventLog.PAYMENT_MISMATCH, order_ref=self.order.id).exists()
        )

    def test_confirm_with_lost_numbers_is_reported(self):
        RaffleNumber.objects.filter(raffle=self.raffle, number=21).update(
            status=RaffleNumber.STATUS_AVAILABLE, holder_ref=None, reserved_at=None
        )
        result = self.settlement.confirm(self.order.id)

        self.assertTrue(result.changed)
        self.assertEqual(result.numbers, [20])
        self.assertEqual(result.mismatch.expected, 2)
        self.assertEqual(result.mismatch.actual, 1)

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            self.settlement.confirm('PUR-MISSING')
        with self.assertRaises(OrderNotFound):
            self.settlement.cancel('PUR-MISSING')
