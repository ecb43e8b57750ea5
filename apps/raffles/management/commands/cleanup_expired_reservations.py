"""
Release expired raffle holds and unpaid orders.

Same sweep the Celery beat schedule runs, for environments driven by cron.

Usage:
    python manage.py cleanup_expired_reservations
    python manage.py cleanup_expired_reservations --dry-run
"""

from django.core.management.base import BaseCommand

from apps.raffles.services import get_engine


class Command(BaseCommand):
    help = 'Release raffle numbers held longer than RAFFLE_HOLD_MINUTES'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List what would be released without changing anything',
        )

    def handle(self, *args, **options):
        engine = get_engine()
        sweeper = engine.sweeper

        if options['dry_run']:
            order_ids = sweeper.expired_order_ids()
            orphans = sweeper.orphan_holds()
            if not order_ids and not orphans:
                self.stdout.write(self.style.SUCCESS('No expired reservations found.'))
                return

            self.stdout.write(
                self.style.WARNING(
                    f'DRY RUN: {len(order_ids)} expired orders and {len(orphans)} orphan held numbers'
                )
            )
            for order_id in order_ids[:10]:
                self.stdout.write(f'  - Order {order_id}')
            for raffle_id, number, holder_ref in orphans[:10]:
                self.stdout.write(f'  - Number {number} held by {holder_ref}')
            return

        result = engine.sweep_expired()
        for order_id in result.failed_order_ids:
            self.stdout.write(self.style.ERROR(f'Error expiring order {order_id}'))

        self.stdout.write(
            self.style.SUCCESS(
                f'Cancelled {result.cancelled_order_count} orders, '
                f'released {result.released_count} numbers.'
            )
        )
