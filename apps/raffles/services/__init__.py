"""Allocation services for raffle numbers."""

from .engine import RaffleEngine, get_engine
from .results import AvailabilityResult, ReservationResult, SettlementResult, SweepResult

__all__ = [
    'RaffleEngine',
    'get_engine',
    'AvailabilityResult',
    'ReservationResult',
    'SettlementResult',
    'SweepResult',
]
