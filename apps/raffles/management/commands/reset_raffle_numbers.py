"""
Development helper: return raffle numbers to the pool.

Cancels the pending orders holding the affected numbers and releases every
selected number. Refuses to run when DEBUG is off.

Usage:
    python manage.py reset_raffle_numbers --numbers 7 8 9
    python manage.py reset_raffle_numbers --all
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.raffles.models import Order, RaffleNumber
from apps.raffles.services import get_engine


class Command(BaseCommand):
    help = 'Release raffle numbers of the active raffle (development only)'

    def add_arguments(self, parser):
        parser.add_argument('--numbers', nargs='+', type=int, default=[])
        parser.add_argument('--all', action='store_true', help='Reset every reserved or sold number')

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError('reset_raffle_numbers only runs with DEBUG enabled')
        if not options['numbers'] and not options['all']:
            raise CommandError('Pass --numbers or --all')

        engine = get_engine()
        raffle = engine.active_raffle()
        if raffle is None:
            raise CommandError('No active raffle')

        rows = RaffleNumber.objects.filter(raffle=raffle).exclude(status=RaffleNumber.STATUS_AVAILABLE)
        if not options['all']:
            rows = rows.filter(number__in=options['numbers'])
        targets = list(rows.values_list('number', 'status', 'holder_ref'))

        holders = {holder for _, _, holder in targets}
        for order_id in Order.objects.filter(
            pk__in=holders, payment_status=Order.STATUS_PENDING
        ).values_list('pk', flat=True):
            engine.cancel_payment(order_id, reason='manual reset')
            self.stdout.write(f'  - Cancelled order {order_id}')

        released = 0
        for number, status, holder in targets:
            if engine.store.compare_and_set_status(
                raffle.id,
                number,
                expected_status=status,
                new_status=RaffleNumber.STATUS_AVAILABLE,
                expected_holder=holder,
            ):
                released += 1

        self.stdout.write(self.style.SUCCESS(f'Reset {len(targets)} numbers ({released} released directly).'))
