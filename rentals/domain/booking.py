"""
Booking Validator
=================

Single accept/reject decision for a proposed rental.  Used by the
reservation service before it inserts a row, and by the quote endpoint the
listing page calls for its pre-check, so both run exactly the same rules.

Steps (short-circuit on the first failure)
------------------------------------------
1. Normalize dates                     -> ``InvalidDateRange``
2. First day strictly before last day  -> ``EndBeforeStart``
3. First day not before *today*        -> ``StartInPast``
4. Vehicle availability flag           -> ``VehicleUnavailable``
5. No blocking overlap                 -> ``DateRangeConflict``
6. Price the range                     -> ``InvalidRate``

The validator is pure: no clock, no I/O.  *today* is always injected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from .dates import DateRange, ZoneLike, coerce_date, normalize_range, resolve_zone
from .errors import DateRangeConflict, EndBeforeStart, StartInPast, VehicleUnavailable
from .overlap import LinearOverlapDetector, OverlapDetector, ReservationWindow
from .pricing import PriceCalculator, day_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingQuote:
    range: DateRange
    day_count: int
    total_price: Decimal

    @property
    def start(self) -> datetime:
        return self.range.start

    @property
    def end(self) -> datetime:
        return self.range.end

    def as_record(self) -> dict[str, Any]:
        """Column values for persisting the reservation."""
        return {
            "start_date": self.range.first_day,
            "end_date": self.range.last_day,
            "total_price": self.total_price,
        }


class BookingValidator:
    def __init__(
        self,
        zone: ZoneLike = "UTC",
        detector: Optional[OverlapDetector] = None,
        calculator: Optional[PriceCalculator] = None,
    ):
        self.zone = resolve_zone(zone)
        self.detector = detector or LinearOverlapDetector()
        self.calculator = calculator or PriceCalculator()

    def windows(self, existing: Iterable[Any]) -> list[ReservationWindow]:
        return [
            e if isinstance(e, ReservationWindow) else ReservationWindow.from_record(e, self.zone)
            for e in existing
        ]

    def validate(
        self,
        vehicle: Any,
        existing: Iterable[Any],
        start: Any,
        end: Any,
        today: date | datetime,
    ) -> BookingQuote:
        """Return a ``BookingQuote`` or raise the first ``BookingError`` hit.

        *vehicle* needs ``price_per_day`` and ``available``; *existing* holds
        the vehicle's reservations (``ReservationWindow`` or any record with
        ``start_date``, ``end_date`` and ``status``).  Non-blocking ones are
        ignored.
        """
        candidate = normalize_range(start, end, self.zone)

        if candidate.first_day >= candidate.last_day:
            raise EndBeforeStart()

        if candidate.first_day < coerce_date(today, self.zone):
            raise StartInPast()

        if not vehicle.available:
            raise VehicleUnavailable()

        result = self.detector.find_conflicts(candidate, self.windows(existing))
        if result.has_conflict:
            logger.info(
                "Booking %s..%s conflicts with %d reservation(s)",
                candidate.first_day,
                candidate.last_day,
                len(result.conflicts),
            )
            raise DateRangeConflict(result.conflicts)

        total = self.calculator.quote(candidate, vehicle.price_per_day)
        return BookingQuote(range=candidate, day_count=day_count(candidate), total_price=total)
