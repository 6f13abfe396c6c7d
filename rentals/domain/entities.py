"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Rental``: enforces valid lifecycle transitions
  (pending -> confirmed -> active -> completed, any live state -> cancelled).
- ``Vehicle.specifications`` is opaque: owned by fleet management and
  passed through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .enums import RENTAL_TRANSITIONS, RentalStatus, VehicleType
from .overlap import is_blocking as status_blocks


class InvalidStateTransition(Exception):
    """Raised when a rental status change violates the state machine."""


def ensure_transition(current: RentalStatus, new_status: RentalStatus) -> None:
    if new_status not in RENTAL_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot transition from {current.value} to {new_status.value}"
        )


@dataclass
class Vehicle:
    id: Optional[int] = None
    type: VehicleType = VehicleType.MOTORCYCLE
    name: str = ""
    description: Optional[str] = None
    price_per_day: Decimal = Decimal("0")
    available: bool = True
    images: list[str] = field(default_factory=list)
    specifications: dict[str, Any] = field(default_factory=dict)


@dataclass
class Rental:
    id: Optional[int] = None
    vehicle_id: int = 0
    user_id: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: RentalStatus = RentalStatus.PENDING
    total_price: Decimal = Decimal("0")
    notes: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return status_blocks(self.status)

    def transition_to(self, new_status: RentalStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        ensure_transition(self.status, new_status)
        self.status = new_status
