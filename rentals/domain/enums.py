"""Domain enumerations and state-transition rules."""

import enum


class VehicleType(str, enum.Enum):
    MOTORCYCLE = "motorcycle"
    UTV = "utv"
    GUIDED_TOUR = "guided_tour"


class RentalStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
RENTAL_TRANSITIONS: dict[RentalStatus, set[RentalStatus]] = {
    RentalStatus.PENDING: {RentalStatus.CONFIRMED, RentalStatus.CANCELLED},
    RentalStatus.CONFIRMED: {RentalStatus.ACTIVE, RentalStatus.CANCELLED},
    RentalStatus.ACTIVE: {RentalStatus.COMPLETED, RentalStatus.CANCELLED},
    RentalStatus.COMPLETED: set(),
    RentalStatus.CANCELLED: set(),
}

# Statuses that occupy a vehicle's calendar
BLOCKING_STATUSES: frozenset[RentalStatus] = frozenset(
    {RentalStatus.PENDING, RentalStatus.CONFIRMED, RentalStatus.ACTIVE}
)

TERMINAL_STATUSES: frozenset[RentalStatus] = frozenset(
    {RentalStatus.COMPLETED, RentalStatus.CANCELLED}
)
