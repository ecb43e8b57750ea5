"""Reservation manager: moves numbers from available to reserved by a hold."""

import logging

from django.conf import settings
from django.utils import timezone

from core.utils import generate_unique_code

from ..inventory import translate_storage_errors
from ..models import EventLog, RaffleNumber
from .availability import normalize_numbers
from .results import ReservationResult

logger = logging.getLogger(__name__)


def generate_hold_id():
    return generate_unique_code(prefix=settings.RAFFLE_HOLD_PREFIX)


class ReservationManager:
    """
    All-or-nothing reservation of a basket of numbers.

    Each number is claimed with its own conditional update, so two buyers racing
    for the same number get exactly one winner. If any number of the basket is
    lost, the numbers already claimed are handed back before returning.
    """

    def __init__(self, store):
        self.store = store

    @translate_storage_errors
    def reserve(self, raffle_id, numbers, now=None):
        requested = normalize_numbers(numbers)
        if not requested:
            raise ValueError("At least one number is required")

        now = now or timezone.now()
        hold_id = generate_hold_id()
        reserved, failed = [], []

        try:
            for number in requested:
                claimed = self.store.compare_and_set_status(
                    raffle_id,
                    number,
                    expected_status=RaffleNumber.STATUS_AVAILABLE,
                    new_status=RaffleNumber.STATUS_RESERVED,
                    holder_ref=hold_id,
                    timestamp=now,
                )
                (reserved if claimed else failed).append(number)
        except Exception:
            logger.error(f"[RESERVE] Error while reserving {requested}, rolling back {reserved}")
            self.release(raffle_id, hold_id, reserved)
            raise

        if failed:
            released = self.release(raffle_id, hold_id, reserved)
            logger.info(
                f"[RESERVE] Numbers {failed} unavailable for raffle {raffle_id}; "
                f"rolled back {released}/{len(reserved)} claimed numbers"
            )
            return ReservationResult(reservation_id=None, reserved_numbers=[], failed_numbers=failed)

        EventLog.record(
            EventLog.RESERVATION_CREATED,
            raffle_id=raffle_id,
            order_ref=hold_id,
            numbers=reserved,
        )
        logger.info(f"[RESERVE] Hold {hold_id} reserved {reserved} in raffle {raffle_id}")
        return ReservationResult(reservation_id=hold_id, reserved_numbers=reserved, failed_numbers=[])

    def release(self, raffle_id, hold_id, numbers):
        """Return numbers still reserved by ``hold_id`` to the pool. Returns how many were released."""
        released = 0
        for number in numbers:
            if self.store.compare_and_set_status(
                raffle_id,
                number,
                expected_status=RaffleNumber.STATUS_RESERVED,
                new_status=RaffleNumber.STATUS_AVAILABLE,
                expected_holder=hold_id,
            ):
                released += 1
        return released
