"""Exceptions raised by the raffle allocation engine."""


class RaffleError(Exception):
    """Base class for allocation engine failures."""

    code = 'raffle_error'


class NumbersUnavailable(RaffleError):
    """One or more requested numbers were not available when reserving."""

    code = 'numbers_unavailable'

    def __init__(self, numbers, message=None):
        self.numbers = sorted(numbers)
        super().__init__(message or f"Numbers not available: {self.numbers}")


class ReservationInvalid(RaffleError):
    """The hold expired or no longer owns every requested number."""

    code = 'reservation_invalid'

    def __init__(self, numbers=(), message=None):
        self.numbers = sorted(numbers)
        super().__init__(message or "Reservation expired or invalid")


class OrderNotFound(RaffleError):
    code = 'order_not_found'

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class NoActiveRaffle(RaffleError):
    code = 'no_active_raffle'

    def __init__(self, message="There is no active raffle"):
        super().__init__(message)


class StorageUnavailable(RaffleError):
    """The inventory store could not be reached. Transient; the caller decides whether to retry."""

    code = 'storage_unavailable'


class PaymentSignalMismatch(RaffleError):
    """
    A payment signal disagrees with the order or the numbers it holds.

    Never raised to callers: it is attached to the settlement result and logged,
    because money may have been collected for numbers that were already released.
    """

    code = 'payment_signal_mismatch'

    def __init__(self, order_id, expected, actual, reason=''):
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        self.reason = reason
        super().__init__(
            f"Order {order_id}: expected {expected} numbers, settled {actual}"
            + (f" ({reason})" if reason else "")
        )
