"""Typed outcomes returned by the allocation managers."""

from dataclasses import asdict, dataclass, field
from typing import List, Optional

from ..exceptions import PaymentSignalMismatch


@dataclass
class AvailabilityResult:
    """Point-in-time snapshot; it does not reserve anything."""
    available: bool
    unavailable_numbers: List[int] = field(default_factory=list)
    simulated: bool = False

    def as_dict(self):
        return asdict(self)


@dataclass
class ReservationResult:
    reservation_id: Optional[str]
    reserved_numbers: List[int] = field(default_factory=list)
    failed_numbers: List[int] = field(default_factory=list)
    simulated: bool = False

    @property
    def success(self):
        return bool(self.reservation_id) and not self.failed_numbers

    def as_dict(self):
        data = asdict(self)
        data['success'] = self.success
        return data


@dataclass
class SettlementResult:
    order_id: str
    payment_status: str
    changed: bool
    numbers: List[int] = field(default_factory=list)
    mismatch: Optional[PaymentSignalMismatch] = None
    simulated: bool = False

    def as_dict(self):
        return {
            'order_id': self.order_id,
            'payment_status': self.payment_status,
            'changed': self.changed,
            'numbers': list(self.numbers),
            'mismatch': str(self.mismatch) if self.mismatch else None,
            'simulated': self.simulated,
        }


@dataclass
class SweepResult:
    released_count: int = 0
    cancelled_order_count: int = 0
    failed_order_ids: List[str] = field(default_factory=list)

    def as_dict(self):
        return asdict(self)
