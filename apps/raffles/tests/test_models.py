"""
Tests for raffle models.
"""

from datetime import timedelta

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from apps.raffles.models import EventLog, Raffle, RaffleNumber
from apps.raffles.tests.utils import make_raffle


class RaffleTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=50)

    def test_populate_numbers_creates_full_range(self):
        numbers = list(self.raffle.numbers.order_by('number').values_list('number', flat=True))
        self.assertEqual(numbers, list(range(1, 51)))
        self.assertFalse(self.raffle.numbers.exclude(status=RaffleNumber.STATUS_AVAILABLE).exists())

    def test_populate_numbers_is_idempotent(self):
        RaffleNumber.objects.filter(raffle=self.raffle, number=3).update(
            status=RaffleNumber.STATUS_RESERVED, holder_ref='TEMP-X', reserved_at=timezone.now()
        )
        self.raffle.total_numbers = 60
        self.raffle.save()

        self.assertEqual(self.raffle.populate_numbers(), 60)
        self.assertEqual(
            RaffleNumber.objects.get(raffle=self.raffle, number=3).status,
            RaffleNumber.STATUS_RESERVED,
        )

    def test_active_returns_active_raffle(self):
        make_raffle(total_numbers=1, is_active=False)
        self.assertEqual(Raffle.objects.active(), self.raffle)

    def test_only_one_active_raffle(self):
        now = timezone.now()
        with self.assertRaises(IntegrityError), transaction.atomic():
            Raffle.objects.create(
                title='Otra',
                total_numbers=10,
                price_per_number=100,
                start_date=now,
                end_date=now + timedelta(days=1),
                is_active=True,
            )

    def test_is_sales_open(self):
        self.assertTrue(self.raffle.is_sales_open)
        self.raffle.end_date = timezone.now() - timedelta(minutes=1)
        self.raffle.start_date = self.raffle.end_date - timedelta(days=1)
        self.assertFalse(self.raffle.is_sales_open)


class RaffleNumberConstraintTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=5)

    def test_available_number_cannot_have_holder(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            RaffleNumber.objects.filter(raffle=self.raffle, number=1).update(holder_ref='TEMP-X')

    def test_reserved_number_requires_reserved_at(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            RaffleNumber.objects.filter(raffle=self.raffle, number=1).update(
                status=RaffleNumber.STATUS_RESERVED, holder_ref='TEMP-X'
            )

    def test_number_unique_per_raffle(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            RaffleNumber.objects.create(raffle=self.raffle, number=1)


class EventLogTestCase(TestCase):

    def test_entries_are_append_only(self):
        entry = EventLog.record(EventLog.RESERVATION_CREATED, order_ref='TEMP-1', numbers=[1, 2])
        self.assertEqual(entry.data, {'numbers': [1, 2]})

        entry.order_ref = 'TEMP-2'
        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()
        self.assertEqual(EventLog.objects.get(pk=entry.pk).order_ref, 'TEMP-1')
