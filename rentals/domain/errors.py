"""
Booking error taxonomy.

Every ``BookingError`` is an expected business rejection: the caller shows
``message`` to the user and carries on.  ``StorageUnavailable`` is the
separate class for persistence / transport faults; its message is generic
on purpose and the underlying cause is only logged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .overlap import ReservationWindow


class BookingError(Exception):
    """Base class for rejections produced by the booking core."""

    kind = "BookingError"
    status_code = 400
    default_message = "Booking request rejected"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidDateRange(BookingError):
    kind = "InvalidDateRange"
    default_message = "Dates could not be parsed as calendar dates"


class EndBeforeStart(BookingError):
    kind = "EndBeforeStart"
    default_message = "End date must be after start date"


class StartInPast(BookingError):
    kind = "StartInPast"
    default_message = "Start date cannot be in the past"


class InvalidRate(BookingError):
    kind = "InvalidRate"
    default_message = "Daily rate must be a finite, non-negative amount"


class VehicleNotFound(BookingError):
    kind = "VehicleNotFound"
    status_code = 404
    default_message = "Vehicle not found"


class VehicleUnavailable(BookingError):
    kind = "VehicleUnavailable"
    status_code = 409
    default_message = "Vehicle is not available for rental"


class DateRangeConflict(BookingError):
    kind = "DateRangeConflict"
    status_code = 409
    default_message = "Vehicle is already booked for the selected dates"

    def __init__(
        self,
        conflicts: Sequence["ReservationWindow"] = (),
        message: Optional[str] = None,
    ):
        self.conflicts = list(conflicts)
        super().__init__(message)


class StorageUnavailable(Exception):
    """Storage or transport fault; never shown to users in detail."""

    kind = "StorageUnavailable"
    status_code = 500
    message = "Booking service is temporarily unavailable"


class RentalNotFound(BookingError):
    kind = "RentalNotFound"
    status_code = 404
    default_message = "Rental not found"
