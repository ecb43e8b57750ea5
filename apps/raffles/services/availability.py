"""Advisory availability checks."""

from ..models import RaffleNumber
from .results import AvailabilityResult


def normalize_numbers(numbers):
    """Deduplicate and sort a collection of requested numbers."""
    return sorted({int(n) for n in numbers})


class AvailabilityChecker:
    """Reports which of a set of numbers are not currently available."""

    def __init__(self, store):
        self.store = store

    def verify(self, raffle_id, numbers):
        requested = normalize_numbers(numbers)
        statuses = self.store.statuses_for(raffle_id, requested)
        # Numbers outside the raffle's range have no row and count as unavailable
        unavailable = [
            n for n in requested
            if statuses.get(n) != RaffleNumber.STATUS_AVAILABLE
        ]
        return AvailabilityResult(available=not unavailable, unavailable_numbers=unavailable)
