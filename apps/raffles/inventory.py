"""
Inventory store for raffle numbers.

Every status change of a RaffleNumber goes through ``compare_and_set_status``
(or ``rehome``), a single conditional UPDATE whose affected-row count decides
whether the transition happened. Nothing here reads a row and writes it back.
"""

import functools
import logging

from django.db import InterfaceError, OperationalError
from django.db.models import Count, Q
from django.utils import timezone

from .exceptions import StorageUnavailable
from .models import RaffleNumber

logger = logging.getLogger(__name__)


def translate_storage_errors(func):
    """Re-raise driver connectivity errors as StorageUnavailable."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error(f"[INVENTORY] Storage unavailable in {func.__name__}: {exc}")
            raise StorageUnavailable(str(exc)) from exc

    return wrapper


class InventoryStore:
    """Durable table of raffle numbers keyed by (raffle, number)."""

    model = RaffleNumber

    @translate_storage_errors
    def list_by_raffle(self, raffle_id):
        return list(self.model.objects.filter(raffle_id=raffle_id).order_by('number'))

    @translate_storage_errors
    def get_by_number(self, raffle_id, number):
        return self.model.objects.filter(raffle_id=raffle_id, number=number).first()

    @translate_storage_errors
    def statuses_for(self, raffle_id, numbers):
        """Map each requested number that exists to its current status."""
        rows = self.model.objects.filter(
            raffle_id=raffle_id, number__in=list(numbers)
        ).values_list('number', 'status')
        return dict(rows)

    @translate_storage_errors
    def numbers_held_by(self, raffle_id, holder_ref, statuses=None):
        queryset = self.model.objects.filter(raffle_id=raffle_id, holder_ref=holder_ref)
        if statuses:
            queryset = queryset.filter(status__in=statuses)
        return list(queryset.order_by('number').values_list('number', flat=True))

    @translate_storage_errors
    def compare_and_set_status(self, raffle_id, number, expected_status, new_status,
                               holder_ref=None, timestamp=None, expected_holder=None):
        """
        Move one number from ``expected_status`` to ``new_status``.

        Returns True only if the row matched ``expected_status`` (and
        ``expected_holder`` when given) at the moment of the write; otherwise
        nothing is changed and False is returned.

        Field rules per target status:
        - available: holder and both timestamps cleared.
        - reserved: holder set to ``holder_ref``, reserved_at set to ``timestamp``.
        - sold: sold_at set to ``timestamp``, reserved_at cleared, holder kept
          unless ``holder_ref`` is given.
        """
        timestamp = timestamp or timezone.now()
        values = {'status': new_status, 'updated_at': timestamp}

        if new_status == self.model.STATUS_AVAILABLE:
            values.update(holder_ref=None, reserved_at=None, sold_at=None)
        elif new_status == self.model.STATUS_RESERVED:
            if not holder_ref:
                raise ValueError("holder_ref is required to reserve a number")
            values.update(holder_ref=holder_ref, reserved_at=timestamp, sold_at=None)
        elif new_status == self.model.STATUS_SOLD:
            if holder_ref:
                values['holder_ref'] = holder_ref
            elif not expected_holder:
                raise ValueError("a holder is required to sell a number")
            values.update(sold_at=timestamp, reserved_at=None)
        else:
            raise ValueError(f"Unknown status: {new_status}")

        filters = {'raffle_id': raffle_id, 'number': number, 'status': expected_status}
        if expected_holder is not None:
            filters['holder_ref'] = expected_holder

        return self.model.objects.filter(**filters).update(**values) == 1

    @translate_storage_errors
    def rehome(self, raffle_id, number, from_holder, to_holder):
        """Hand a reserved number from one holder to another, keeping reserved_at."""
        return self.model.objects.filter(
            raffle_id=raffle_id,
            number=number,
            status=self.model.STATUS_RESERVED,
            holder_ref=from_holder,
        ).update(holder_ref=to_holder, updated_at=timezone.now()) == 1

    @translate_storage_errors
    def stale_reservations(self, cutoff, exclude_holders=None):
        """Reserved numbers whose reserved_at is at or before ``cutoff``."""
        queryset = self.model.objects.filter(
            status=self.model.STATUS_RESERVED,
            reserved_at__lte=cutoff,
        )
        if exclude_holders is not None:
            queryset = queryset.exclude(holder_ref__in=exclude_holders)
        return list(
            queryset.order_by('raffle_id', 'number').values_list('raffle_id', 'number', 'holder_ref')
        )

    @translate_storage_errors
    def stats(self, raffle_id):
        return self.model.objects.filter(raffle_id=raffle_id).aggregate(
            total=Count('id'),
            available=Count('id', filter=Q(status=self.model.STATUS_AVAILABLE)),
            reserved=Count('id', filter=Q(status=self.model.STATUS_RESERVED)),
            sold=Count('id', filter=Q(status=self.model.STATUS_SOLD)),
        )
