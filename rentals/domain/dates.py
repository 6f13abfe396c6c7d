"""
Date Range Normalizer
=====================

Bookings are day-granular: "June 1 to June 3" occupies all of June 1, 2
and 3 no matter what hour the request was submitted.  Every range is
therefore expanded to full-day instants in the service's reference zone
before it is compared or priced::

    start = first_day @ 00:00:00.000
    end   = last_day  @ 23:59:59.999

Aware inputs are converted into the reference zone first, so two clients
in different zones always agree on which calendar days a request covers.
Naive inputs are read as already being in the reference zone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Any, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidDateRange

START_OF_DAY = time(0, 0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)

DateLike = Union[date, datetime, str, int, float, Decimal]
ZoneLike = Union[str, tzinfo]


def resolve_zone(zone: ZoneLike) -> tzinfo:
    if isinstance(zone, tzinfo):
        return zone
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown reference timezone: {zone!r}") from exc


def _from_epoch(seconds: Any, tz: tzinfo) -> date:
    try:
        return datetime.fromtimestamp(float(seconds), tz).date()
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidDateRange(f"Invalid timestamp: {seconds!r}") from exc


def coerce_date(value: Any, zone: ZoneLike) -> date:
    """Coerce any date-like *value* to a calendar day in *zone*.

    Accepts ``date``, ``datetime``, ISO-8601 strings (date or date-time,
    ``Z`` suffix allowed) and Unix epoch seconds as numbers or numeric
    strings.  Raises ``InvalidDateRange`` only when nothing fits.
    """
    tz = resolve_zone(zone)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise InvalidDateRange(f"Invalid date: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return _from_epoch(value, tz)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDateRange("Date is empty")
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return coerce_date(datetime.fromisoformat(text), tz)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise InvalidDateRange(f"Invalid date: {value!r}") from None
        return _from_epoch(number, tz)

    raise InvalidDateRange(f"Invalid date: {value!r}")


@dataclass(frozen=True)
class DateRange:
    """A closed ``[start, end]`` interval of full-day instants."""

    start: datetime
    end: datetime

    @classmethod
    def from_days(cls, first_day: date, last_day: date, zone: ZoneLike) -> "DateRange":
        tz = resolve_zone(zone)
        return cls(
            start=datetime.combine(first_day, START_OF_DAY, tzinfo=tz),
            end=datetime.combine(last_day, END_OF_DAY, tzinfo=tz),
        )

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        return self.end.date()

    def overlaps(self, other: "DateRange") -> bool:
        # Closed intervals: touching on a shared day is an overlap.
        return self.start <= other.end and self.end >= other.start


def normalize_range(start: Any, end: Any, zone: ZoneLike) -> DateRange:
    """Expand a (start, end) pair to day boundaries in *zone*.

    Idempotent: normalizing an already normalized range returns it unchanged.
    """
    tz = resolve_zone(zone)
    return DateRange.from_days(coerce_date(start, tz), coerce_date(end, tz), tz)
