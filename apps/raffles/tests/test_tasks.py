"""
Tests for the sweep task and management commands.
"""

from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.raffles.exceptions import StorageUnavailable
from apps.raffles.models import Order, Raffle, RaffleNumber
from apps.raffles.services import SweepResult, get_engine
from apps.raffles.tasks import release_expired_reservations
from apps.raffles.tests.utils import BUYER, make_raffle


class ReleaseExpiredReservationsTaskTestCase(TestCase):

    def test_task_returns_sweep_counts(self):
        with patch.object(get_engine(), 'sweep_expired', return_value=SweepResult(3, 1)):
            result = release_expired_reservations.apply().get()

        self.assertEqual(result, {'released_count': 3, 'cancelled_order_count': 1, 'failed_order_ids': []})

    def test_task_retries_on_storage_errors(self):
        with patch.object(get_engine(), 'sweep_expired', side_effect=StorageUnavailable('down')):
            outcome = release_expired_reservations.apply()

        self.assertTrue(outcome.failed())


class CleanupExpiredReservationsCommandTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=20)
        get_engine().reserve([4], now=timezone.now() - timedelta(minutes=30))

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('cleanup_expired_reservations', '--dry-run', stdout=out)

        self.assertIn('DRY RUN', out.getvalue())
        self.assertEqual(
            RaffleNumber.objects.get(raffle=self.raffle, number=4).status, RaffleNumber.STATUS_RESERVED
        )

    def test_releases_expired_holds(self):
        out = StringIO()
        call_command('cleanup_expired_reservations', stdout=out)

        self.assertIn('released 1 numbers', out.getvalue())
        self.assertEqual(
            RaffleNumber.objects.get(raffle=self.raffle, number=4).status, RaffleNumber.STATUS_AVAILABLE
        )


class CreateRaffleCommandTestCase(TestCase):

    def test_creates_and_activates(self):
        old = make_raffle(total_numbers=5)
        call_command(
            'create_raffle', '--title', 'Rifa 2026', '--total-numbers', '30', '--price', '500', '--activate',
            stdout=StringIO(),
        )

        raffle = Raffle.objects.active()
        self.assertEqual(raffle.title, 'Rifa 2026')
        self.assertEqual(raffle.numbers.count(), 30)
        old.refresh_from_db()
        self.assertFalse(old.is_active)

    def test_rejects_bad_price(self):
        with self.assertRaises(CommandError):
            call_command('create_raffle', '--title', 'X', '--price', 'abc', stdout=StringIO())


class ResetRaffleNumbersCommandTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=20)
        engine = get_engine()
        hold = engine.reserve([1, 2])
        self.order = engine.create_order(hold.reservation_id, BUYER, [1, 2], 2000)

    @override_settings(DEBUG=False)
    def test_refuses_without_debug(self):
        with self.assertRaises(CommandError):
            call_command('reset_raffle_numbers', '--all', stdout=StringIO())

    @override_settings(DEBUG=True)
    def test_resets_numbers_and_cancels_orders(self):
        call_command('reset_raffle_numbers', '--numbers', '1', stdout=StringIO())

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_CANCELLED)
        self.assertFalse(
            RaffleNumber.objects.filter(raffle=self.raffle).exclude(status=RaffleNumber.STATUS_AVAILABLE).exists()
        )
