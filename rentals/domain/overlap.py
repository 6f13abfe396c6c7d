"""
Overlap Detector  (Strategy Pattern)
====================================

A candidate range conflicts with an existing reservation iff the
reservation is in a blocking status and::

    candidate.start <= existing.end  and  candidate.end >= existing.start

Both ranges are normalized to full days first, so a candidate that starts
on the same day an existing reservation ends *is* a conflict.

Complexity: O(n) in the number of reservations for the vehicle.  A single
vehicle rarely holds more than a few dozen live bookings; an interval tree
can replace ``LinearOverlapDetector`` behind the same interface if needed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .dates import DateRange, ZoneLike, normalize_range
from .enums import BLOCKING_STATUSES, RentalStatus

logger = logging.getLogger(__name__)


def is_blocking(status: Any) -> bool:
    """Return True when *status* occupies the vehicle's calendar.

    Unknown status values are treated as blocking so a data problem can
    never open the calendar for a double booking.
    """
    raw = status.value if isinstance(status, RentalStatus) else str(status).strip().lower()
    try:
        return RentalStatus(raw) in BLOCKING_STATUSES
    except ValueError:
        logger.warning("Unknown rental status %r treated as blocking", status)
        return True


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ReservationWindow:
    range: DateRange
    status: Any
    rental_id: Optional[Any] = None

    @classmethod
    def from_record(cls, record: Any, zone: ZoneLike) -> "ReservationWindow":
        """Build a window from anything with start_date / end_date / status."""
        return cls(
            range=normalize_range(record.start_date, record.end_date, zone),
            status=record.status,
            rental_id=getattr(record, "id", None),
        )

    @property
    def blocking(self) -> bool:
        return is_blocking(self.status)


@dataclass(frozen=True)
class OverlapResult:
    conflicts: list[ReservationWindow] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)


# ── Strategy hierarchy ────────────────────────────────────────────────


class OverlapDetector(ABC):
    @abstractmethod
    def find_conflicts(
        self, candidate: DateRange, windows: Iterable[ReservationWindow]
    ) -> OverlapResult: ...


class LinearOverlapDetector(OverlapDetector):
    """Scan every window once; order of *windows* is irrelevant."""

    def find_conflicts(
        self, candidate: DateRange, windows: Iterable[ReservationWindow]
    ) -> OverlapResult:
        return OverlapResult(
            conflicts=[
                w for w in windows if w.blocking and candidate.overlaps(w.range)
            ]
        )
