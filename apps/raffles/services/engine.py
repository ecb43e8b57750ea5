"""
Raffle allocation engine.

Facade over the inventory store and the managers, constructed once per process
through ``get_engine()``. It resolves the active raffle and applies the
simulation switch: when ``RAFFLE_SIMULATION_MODE`` is on and no raffle is
active, operations answer with simulated, non-persisted results.
"""

import functools
import logging
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from ..exceptions import NoActiveRaffle, NumbersUnavailable, OrderNotFound
from ..inventory import InventoryStore, translate_storage_errors
from ..models import Order, Raffle, RaffleNumber, generate_order_id
from .availability import AvailabilityChecker, normalize_numbers
from .expiry import ExpirySweeper
from .orders import BUYER_FIELDS, OrderManager
from .reservations import ReservationManager, generate_hold_id
from .results import AvailabilityResult, ReservationResult, SettlementResult
from .settlement import SettlementManager

logger = logging.getLogger(__name__)


class RaffleEngine:

    def __init__(self, store=None):
        self.store = store or InventoryStore()
        self.availability = AvailabilityChecker(self.store)
        self.reservations = ReservationManager(self.store)
        self.orders = OrderManager(self.store)
        self.settlement = SettlementManager(self.store)
        self.sweeper = ExpirySweeper(self.store, self.settlement)

    # Raffle resolution

    @translate_storage_errors
    def active_raffle(self):
        """
        Return the active raffle, or None when running in simulation mode.

        Raises NoActiveRaffle when there is no active raffle and the simulation
        switch is off.
        """
        raffle = Raffle.objects.active()
        if raffle is not None:
            return raffle
        if settings.RAFFLE_SIMULATION_MODE:
            logger.debug("[ENGINE] No active raffle, answering in simulation mode")
            return None
        raise NoActiveRaffle()

    # Queries

    def get_config(self):
        raffle = self.active_raffle()
        if raffle is None:
            return {
                'id': None,
                'title': 'Rifa (simulación)',
                'description': '',
                'total_numbers': settings.RAFFLE_SIMULATED_TOTAL_NUMBERS,
                'price_per_number': Decimal(settings.RAFFLE_SIMULATED_PRICE),
                'start_date': None,
                'end_date': None,
                'is_active': False,
                'sales_open': True,
                'hold_minutes': settings.RAFFLE_HOLD_MINUTES,
                'simulated': True,
            }
        return {
            'id': raffle.id,
            'title': raffle.title,
            'description': raffle.description,
            'total_numbers': raffle.total_numbers,
            'price_per_number': raffle.price_per_number,
            'start_date': raffle.start_date,
            'end_date': raffle.end_date,
            'is_active': raffle.is_active,
            'sales_open': raffle.is_sales_open,
            'hold_minutes': settings.RAFFLE_HOLD_MINUTES,
            'simulated': False,
        }

    def list_numbers(self):
        raffle = self.active_raffle()
        if raffle is None:
            return [
                {'number': n, 'status': RaffleNumber.STATUS_AVAILABLE}
                for n in range(1, settings.RAFFLE_SIMULATED_TOTAL_NUMBERS + 1)
            ]
        return [
            {'number': row.number, 'status': row.status}
            for row in self.store.list_by_raffle(raffle.id)
        ]

    def get_stats(self):
        raffle = self.active_raffle()
        if raffle is None:
            total = settings.RAFFLE_SIMULATED_TOTAL_NUMBERS
            return {'total': total, 'available': total, 'reserved': 0, 'sold': 0, 'simulated': True}
        stats = self.store.stats(raffle.id)
        stats['simulated'] = False
        return stats

    @translate_storage_errors
    def get_order(self, order_id):
        order = Order.objects.select_related('raffle').filter(pk=order_id).first()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    # Allocation

    def verify_availability(self, numbers):
        raffle = self.active_raffle()
        if raffle is None:
            return AvailabilityResult(available=True, unavailable_numbers=[], simulated=True)
        return self.availability.verify(raffle.id, numbers)

    def reserve(self, numbers, now=None):
        """Reserve a basket of numbers; raises NumbersUnavailable naming the blocking ones."""
        raffle = self.active_raffle()
        if raffle is None:
            return ReservationResult(
                reservation_id=generate_hold_id(),
                reserved_numbers=normalize_numbers(numbers),
                simulated=True,
            )
        result = self.reservations.reserve(raffle.id, numbers, now=now)
        if not result.success:
            raise NumbersUnavailable(result.failed_numbers)
        return result

    def create_order(self, reservation_id, buyer, numbers, total_amount):
        raffle = self.active_raffle()
        if raffle is None:
            # Not persisted
            return Order(
                id=generate_order_id(),
                numbers_count=len(normalize_numbers(numbers)),
                total_amount=Decimal(str(total_amount)),
                reservation_id=reservation_id,
                created_at=timezone.now(),
                **{name: buyer.get(name) or '' for name in BUYER_FIELDS},
            )
        return self.orders.create_order(raffle, reservation_id, buyer, numbers, total_amount)

    # Settlement

    def _simulated_settlement(self, order_id, status):
        if settings.RAFFLE_SIMULATION_MODE and not Raffle.objects.filter(is_active=True).exists():
            return SettlementResult(order_id, status, changed=True, simulated=True)
        raise OrderNotFound(order_id)

    @translate_storage_errors
    def confirm_payment(self, order_id, payment_meta=None, now=None):
        if not Order.objects.filter(pk=order_id).exists():
            return self._simulated_settlement(order_id, Order.STATUS_APPROVED)
        return self.settlement.confirm(order_id, payment_meta, now=now)

    @translate_storage_errors
    def cancel_payment(self, order_id, status=Order.STATUS_CANCELLED, reason='', now=None):
        if not Order.objects.filter(pk=order_id).exists():
            return self._simulated_settlement(order_id, status)
        return self.settlement.cancel(order_id, status=status, reason=reason, now=now)

    def sweep_expired(self, now=None):
        return self.sweeper.sweep(now=now)


@functools.lru_cache(maxsize=None)
def get_engine():
    """Process-wide engine instance."""
    return RaffleEngine()
