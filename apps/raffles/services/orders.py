"""Order manager: binds a hold to a buyer's order."""

import logging
from decimal import Decimal

from ..exceptions import ReservationInvalid
from ..inventory import translate_storage_errors
from ..models import EventLog, Order, RaffleNumber
from .availability import normalize_numbers

logger = logging.getLogger(__name__)

BUYER_FIELDS = ('buyer_name', 'student_name', 'division', 'course', 'email', 'phone')


class OrderManager:
    """
    Converts a short-lived hold into an order-scoped hold.

    Steps:
    1. Check every number is still reserved by the hold.
    2. Insert the pending order.
    3. Re-home each number from the hold id to the order id, conditionally
       on the hold still owning it.
    4. If any re-home misses, delete the order and release what moved.
    """

    def __init__(self, store):
        self.store = store

    @translate_storage_errors
    def create_order(self, raffle, reservation_id, buyer, numbers, total_amount):
        requested = normalize_numbers(numbers)
        if not requested:
            raise ValueError("At least one number is required")

        held = set(self.store.numbers_held_by(
            raffle.id, reservation_id, statuses=[RaffleNumber.STATUS_RESERVED]
        ))
        missing = [n for n in requested if n not in held]
        if missing:
            logger.warning(f"[ORDER] Hold {reservation_id} no longer owns {missing}")
            raise ReservationInvalid(missing)

        order = Order.objects.create(
            raffle=raffle,
            numbers_count=len(requested),
            total_amount=Decimal(str(total_amount)),
            reservation_id=reservation_id,
            payment_status=Order.STATUS_PENDING,
            **{name: buyer.get(name) or '' for name in BUYER_FIELDS},
        )

        rehomed = []
        try:
            for number in requested:
                if self.store.rehome(raffle.id, number, reservation_id, order.id):
                    rehomed.append(number)
        except Exception:
            logger.error(f"[ORDER] Error re-homing numbers for {order.id}, rolling back")
            self._rollback(order, rehomed)
            raise

        if len(rehomed) != len(requested):
            lost = [n for n in requested if n not in rehomed]
            logger.warning(f"[ORDER] Hold {reservation_id} lost {lost} while creating {order.id}, rolling back")
            self._rollback(order, rehomed)
            raise ReservationInvalid(lost)

        EventLog.record(
            EventLog.PURCHASE_CREATED,
            raffle_id=raffle.id,
            order_ref=order.id,
            reservation_id=reservation_id,
            numbers=requested,
            total_amount=order.total_amount,
            email=order.email,
        )
        logger.info(f"[ORDER] Order {order.id} created from hold {reservation_id} with {requested}")
        return order

    def _rollback(self, order, numbers):
        for number in numbers:
            self.store.compare_and_set_status(
                order.raffle_id,
                number,
                expected_status=RaffleNumber.STATUS_RESERVED,
                new_status=RaffleNumber.STATUS_AVAILABLE,
                expected_holder=order.id,
            )
        order.delete()
