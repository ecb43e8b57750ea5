"""
Tests for the engine facade: raffle resolution, simulation switch, round trips.
"""

from django.test import TestCase, override_settings

from apps.raffles.exceptions import NoActiveRaffle, NumbersUnavailable, OrderNotFound, ReservationInvalid
from apps.raffles.models import Order, RaffleNumber
from apps.raffles.services import RaffleEngine, get_engine
from apps.raffles.tests.utils import BUYER, make_raffle


class RaffleEngineTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=100)
        self.engine = RaffleEngine()

    def test_get_engine_is_shared(self):
        self.assertIs(get_engine(), get_engine())

    def test_config_and_stats(self):
        config = self.engine.get_config()
        self.assertEqual(config['id'], self.raffle.id)
        self.assertEqual(config['total_numbers'], 100)
        self.assertFalse(config['simulated'])

        self.engine.reserve([1, 2])
        stats = self.engine.get_stats()
        self.assertEqual((stats['total'], stats['available'], stats['reserved'], stats['sold']), (100, 98, 2, 0))

    def test_list_numbers_is_ordered(self):
        numbers = self.engine.list_numbers()
        self.assertEqual([n['number'] for n in numbers], list(range(1, 101)))

    def test_verify_availability(self):
        self.engine.reserve([10])
        result = self.engine.verify_availability([9, 10, 11])
        self.assertFalse(result.available)
        self.assertEqual(result.unavailable_numbers, [10])

    def test_reserve_conflict_raises_with_numbers(self):
        self.engine.reserve([10])
        with self.assertRaises(NumbersUnavailable) as ctx:
            self.engine.reserve([9, 10])
        self.assertEqual(ctx.exception.numbers, [10])
        self.assertEqual(
            RaffleNumber.objects.get(raffle=self.raffle, number=9).status, RaffleNumber.STATUS_AVAILABLE
        )

    def test_round_trip_confirm(self):
        hold = self.engine.reserve([30, 31])
        order = self.engine.create_order(hold.reservation_id, BUYER, [30, 31], 2000)
        self.engine.confirm_payment(order.id, {'payment_id': '55'})

        rows = RaffleNumber.objects.filter(raffle=self.raffle, number__in=[30, 31])
        self.assertTrue(all(r.status == RaffleNumber.STATUS_SOLD and r.holder_ref == order.id for r in rows))
        self.assertEqual(self.engine.get_order(order.id).payment_status, Order.STATUS_APPROVED)

    def test_round_trip_cancel(self):
        hold = self.engine.reserve([30, 31])
        order = self.engine.create_order(hold.reservation_id, BUYER, [30, 31], 2000)
        self.engine.cancel_payment(order.id)

        rows = RaffleNumber.objects.filter(raffle=self.raffle, number__in=[30, 31])
        self.assertTrue(all(r.status == RaffleNumber.STATUS_AVAILABLE and r.holder_ref is None for r in rows))

    def test_hold_cannot_be_used_twice(self):
        hold = self.engine.reserve([40])
        self.engine.create_order(hold.reservation_id, BUYER, [40], 1000)
        with self.assertRaises(ReservationInvalid):
            self.engine.create_order(hold.reservation_id, BUYER, [40], 1000)

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            self.engine.get_order('PUR-NOPE')
        with self.assertRaises(OrderNotFound):
            self.engine.confirm_payment('PUR-NOPE')


class NoActiveRaffleTestCase(TestCase):

    def setUp(self):
        self.engine = RaffleEngine()

    @override_settings(RAFFLE_SIMULATION_MODE=False)
    def test_without_raffle_operations_fail(self):
        with self.assertRaises(NoActiveRaffle):
            self.engine.reserve([1])
        with self.assertRaises(NoActiveRaffle):
            self.engine.get_config()

    @override_settings(RAFFLE_SIMULATION_MODE=True, RAFFLE_SIMULATED_TOTAL_NUMBERS=2000)
    def test_simulation_mode_answers_without_persistence(self):
        config = self.engine.get_config()
        self.assertTrue(config['simulated'])
        self.assertEqual(config['total_numbers'], 2000)

        hold = self.engine.reserve([5, 6])
        self.assertTrue(hold.success)
        self.assertTrue(hold.simulated)

        order = self.engine.create_order(hold.reservation_id, BUYER, [5, 6], 2000)
        self.assertTrue(order.id.startswith('PUR-'))
        self.assertFalse(Order.objects.exists())

        self.assertTrue(self.engine.confirm_payment(order.id).simulated)
        self.assertTrue(self.engine.verify_availability([1]).available)
        self.assertEqual(self.engine.get_stats()['available'], 2000)

    @override_settings(RAFFLE_SIMULATION_MODE=True)
    def test_active_raffle_wins_over_simulation(self):
        raffle = make_raffle(total_numbers=10)
        self.assertEqual(self.engine.get_config()['id'], raffle.id)
        with self.assertRaises(OrderNotFound):
            self.engine.confirm_payment('PUR-NOPE')
