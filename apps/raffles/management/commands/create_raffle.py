"""
Create a raffle and seed its numbers.

Usage:
    python manage.py create_raffle --title "Rifa 2026" --total-numbers 1500 --price 1000 --activate
"""

from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.raffles.models import Raffle


class Command(BaseCommand):
    help = 'Create a raffle with numbers 1..N, optionally making it the active one'

    def add_arguments(self, parser):
        parser.add_argument('--title', required=True)
        parser.add_argument('--description', default='')
        parser.add_argument('--total-numbers', type=int, default=1500)
        parser.add_argument('--price', required=True, help='Price per number')
        parser.add_argument('--start', help='ISO datetime, defaults to now')
        parser.add_argument('--end', help='ISO datetime, defaults to 30 days after start')
        parser.add_argument(
            '--activate',
            action='store_true',
            help='Deactivate any other raffle and activate this one',
        )

    def _parse_date(self, value, name):
        parsed = parse_datetime(value)
        if parsed is None:
            raise CommandError(f'Invalid --{name}: {value}')
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed)
        return parsed

    def handle(self, *args, **options):
        if options['total_numbers'] < 1:
            raise CommandError('--total-numbers must be at least 1')
        try:
            price = Decimal(options['price'])
        except InvalidOperation:
            raise CommandError(f"Invalid --price: {options['price']}")

        start = self._parse_date(options['start'], 'start') if options['start'] else timezone.now()
        end = self._parse_date(options['end'], 'end') if options['end'] else start + timedelta(days=30)
        if end < start:
            raise CommandError('--end must be after --start')

        with transaction.atomic():
            if options['activate']:
                Raffle.objects.filter(is_active=True).update(is_active=False)
            raffle = Raffle.objects.create(
                title=options['title'],
                description=options['description'],
                total_numbers=options['total_numbers'],
                price_per_number=price,
                start_date=start,
                end_date=end,
                is_active=options['activate'],
            )
            count = raffle.populate_numbers()

        state = 'active' if raffle.is_active else 'inactive'
        self.stdout.write(
            self.style.SUCCESS(f'Created {state} raffle {raffle.id} "{raffle.title}" with {count} numbers')
        )
