"""
Tests for reservation semantics: single winner per number, all-or-nothing baskets.
"""

import threading
import unittest

from django.db import connection
from django.test import TestCase, TransactionTestCase

from apps.raffles.inventory import InventoryStore
from apps.raffles.models import EventLog, RaffleNumber
from apps.raffles.services.reservations import ReservationManager
from apps.raffles.tests.utils import make_raffle


class ReservationManagerTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=200)
        self.manager = ReservationManager(InventoryStore())

    def _status(self, number):
        return RaffleNumber.objects.get(raffle=self.raffle, number=number)

    def test_reserve_success(self):
        result = self.manager.reserve(self.raffle.id, [12, 10, 11, 10])

        self.assertTrue(result.success)
        self.assertTrue(result.reservation_id.startswith('TEMP-'))
        self.assertEqual(result.reserved_numbers, [10, 11, 12])
        self.assertEqual(result.failed_numbers, [])
        for number in (10, 11, 12):
            self.assertEqual(self._status(number).holder_ref, result.reservation_id)
        self.assertTrue(
            EventLog.objects.filter(
                event_type=EventLog.RESERVATION_CREATED, order_ref=result.reservation_id
            ).exists()
        )

    def test_empty_basket_is_rejected(self):
        with self.assertRaises(ValueError):
            self.manager.reserve(self.raffle.id, [])

    def test_conflict_rolls_back_whole_basket(self):
        first = self.manager.reserve(self.raffle.id, [2])
        result = self.manager.reserve(self.raffle.id, [1, 2, 3])

        self.assertFalse(result.success)
        self.assertIsNone(result.reservation_id)
        self.assertEqual(result.reserved_numbers, [])
        self.assertEqual(result.failed_numbers, [2])
        self.assertEqual(self._status(1).status, RaffleNumber.STATUS_AVAILABLE)
        self.assertEqual(self._status(3).status, RaffleNumber.STATUS_AVAILABLE)
        self.assertEqual(self._status(2).holder_ref, first.reservation_id)

    def test_numbers_outside_raffle_fail(self):
        result = self.manager.reserve(self.raffle.id, [5, 500])
        self.assertEqual(result.failed_numbers, [500])
        self.assertEqual(self._status(5).status, RaffleNumber.STATUS_AVAILABLE)

    def test_same_number_has_single_winner(self):
        first = self.manager.reserve(self.raffle.id, [50])
        second = self.manager.reserve(self.raffle.id, [50])

        self.assertEqual(first.reserved_numbers, [50])
        self.assertEqual(second.failed_numbers, [50])

    def test_overlapping_baskets_never_share_numbers(self):
        baskets = [{100, 101, 102}, {101, 102, 103}, {102, 103, 104}, {100, 104, 105}]
        results = [self.manager.reserve(self.raffle.id, basket) for basket in baskets]

        won = [n for result in results for n in result.reserved_numbers]
        self.assertEqual(len(won), len(set(won)))
        held = RaffleNumber.objects.filter(
            raffle=self.raffle, status=RaffleNumber.STATUS_RESERVED
        ).count()
        self.assertEqual(held, len(won))

    def test_rollback_when_storage_fails_mid_basket(self):
        store = self.manager.store
        original = store.compare_and_set_status
        calls = []

        def flaky(raffle_id, number, *args, **kwargs):
            calls.append(number)
            if number == 3 and kwargs.get('new_status') == RaffleNumber.STATUS_RESERVED:
                raise RuntimeError('boom')
            return original(raffle_id, number, *args, **kwargs)

        store.compare_and_set_status = flaky
        try:
            with self.assertRaises(RuntimeError):
                self.manager.reserve(self.raffle.id, [1, 2, 3])
        finally:
            del store.compare_and_set_status

        self.assertFalse(
            RaffleNumber.objects.filter(raffle=self.raffle, status=RaffleNumber.STATUS_RESERVED).exists()
        )


@unittest.skipUnless(connection.vendor == 'postgresql', 'Needs row-level concurrency (PostgreSQL)')
class ConcurrentReservationTestCase(TransactionTestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=200)

    def _race(self, baskets):
        results = [None] * len(baskets)
        barrier = threading.Barrier(len(baskets))

        def worker(index, basket):
            try:
                barrier.wait()
                results[index] = ReservationManager(InventoryStore()).reserve(self.raffle.id, basket)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(i, b)) for i, b in enumerate(baskets)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_two_buyers_race_for_one_number(self):
        results = self._race([[50], [50]])
        winners = [r for r in results if r.success]
        losers = [r for r in results if not r.success]

        self.assertEqual(len(winners), 1)
        self.assertEqual(winners[0].reserved_numbers, [50])
        self.assertEqual(losers[0].failed_numbers, [50])

    def test_overlapping_baskets_race(self):
        results = self._race([[100, 101, 102], [101, 102, 103], [102, 103, 104], [100, 104, 105]])
        won = [n for result in results for n in result.reserved_numbers]
        self.assertEqual(len(won), len(set(won)))
