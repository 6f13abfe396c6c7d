"""
Rental Price Calculator
=======================

Formula
-------
Total = Day_Count x Price_Per_Day

* **Day_Count** = max(1, round((end - start) / 1 day)) over a normalized
  range, so 2024-06-01 .. 2024-06-03 spans 3 billable days.
* Rounding absorbs the 1 ms short of a full day left by normalization; on
  exact day boundaries it never changes the result.

Complexity: O(1) per quote.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from .dates import DateRange
from .errors import InvalidRate

ONE_DAY = timedelta(days=1)
CENTS = Decimal("0.01")


def day_count(date_range: DateRange) -> int:
    return max(1, round((date_range.end - date_range.start) / ONE_DAY))


def coerce_rate(rate: Any) -> Decimal:
    """Return *rate* as a finite, non-negative ``Decimal`` or raise."""
    if isinstance(rate, bool):
        raise InvalidRate(f"Invalid daily rate: {rate!r}")
    try:
        value = rate if isinstance(rate, Decimal) else Decimal(str(rate).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRate(f"Invalid daily rate: {rate!r}") from None
    if not value.is_finite() or value < 0:
        raise InvalidRate(f"Invalid daily rate: {rate!r}")
    return value


class PriceCalculator:
    """High-level API used by the booking validator and the quote endpoint."""

    def quote(self, date_range: DateRange, rate: Any) -> Decimal:
        price_per_day = coerce_rate(rate)
        return (price_per_day * day_count(date_range)).quantize(CENTS)
