"""
Reservation Workflow
====================

Wires the pure ``BookingValidator`` to storage.

Concurrency safety
------------------
Fetching a vehicle's reservations, validating, then inserting is a
read-then-write race: two requests for overlapping dates can both pass the
overlap check before either insert commits.  Two guards close it:

* **Redis per-vehicle lock** serializes the check-then-insert sequence
  across API processes.  A second booking for the same vehicle waits up to
  ``booking_lock_wait_seconds`` for the holder; the insert is committed
  before the lock is released so the next holder sees it.
* **``rentals_no_overlap`` exclusion constraint** in PostgreSQL is the
  authoritative check.  A violation is mapped back to ``DateRangeConflict``.

The validator's answer is advisory; the constraint is final.

Retries
-------
Genuine conflicts are business rejections and are never retried.
Transient DB / Redis faults are retried a few times with exponential
backoff, then surfaced as ``StorageUnavailable``.  A lock still held after
the whole wait is not retried; it is surfaced as ``StorageUnavailable``
directly.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

import redis.asyncio as aioredis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.config import settings
from rentals.domain.booking import BookingQuote, BookingValidator
from rentals.domain.dates import coerce_date
from rentals.domain.entities import ensure_transition
from rentals.domain.enums import RentalStatus
from rentals.domain.errors import (
    DateRangeConflict,
    RentalNotFound,
    StorageUnavailable,
    VehicleNotFound,
)
from rentals.infrastructure.locks import DistributedLock, LockNotAcquired
from rentals.infrastructure.models import RentalModel, VehicleModel
from rentals.infrastructure.repositories import RentalRepository, VehicleRepository
from rentals.infrastructure.retry import retry_async

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "rentals_no_overlap"
EXCLUSION_VIOLATION = "23P01"  # PostgreSQL SQLSTATE


def is_overlap_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == EXCLUSION_VIOLATION or OVERLAP_CONSTRAINT in str(orig)


class ReservationService:
    def __init__(
        self,
        session: AsyncSession,
        redis: aioredis.Redis,
        *,
        validator: Optional[BookingValidator] = None,
        lock_ttl_seconds: int = settings.booking_lock_ttl_seconds,
        lock_wait_seconds: float = settings.booking_lock_wait_seconds,
        lock_poll_interval: float = settings.booking_lock_poll_interval,
        retry_attempts: int = settings.storage_retry_attempts,
        retry_base_delay: float = settings.storage_retry_base_delay,
    ):
        self.session = session
        self.redis = redis
        self.validator = validator or BookingValidator(settings.reference_timezone)
        self.vehicles = VehicleRepository(session)
        self.rentals = RentalRepository(session)
        self.lock_ttl = lock_ttl_seconds
        self.lock_wait = lock_wait_seconds
        self.lock_poll_interval = lock_poll_interval
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay

    async def _retry(self, operation, label: str):
        return await retry_async(
            operation,
            attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            on_retry=self.session.rollback,
            label=label,
        )

    async def _vehicle(self, vehicle_id: int) -> VehicleModel:
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise VehicleNotFound()
        return vehicle

    # ── Public API ────────────────────────────────────────────────────

    async def quote(
        self, vehicle_id: int, start: Any, end: Any, today: date | datetime
    ) -> BookingQuote:
        """Validate and price a request without persisting anything."""

        async def attempt() -> BookingQuote:
            vehicle = await self._vehicle(vehicle_id)
            existing = await self.rentals.get_blocking_for_vehicle(
                vehicle_id, since=coerce_date(today, self.validator.zone)
            )
            return self.validator.validate(vehicle, existing, start, end, today)

        return await self._retry(attempt, f"quote for vehicle {vehicle_id}")

    async def create_reservation(
        self,
        *,
        user_id: int,
        vehicle_id: int,
        start: Any,
        end: Any,
        today: date | datetime,
        notes: Optional[str] = None,
    ) -> tuple[RentalModel, VehicleModel]:
        """Create a ``pending`` reservation or raise a ``BookingError``."""
        since = coerce_date(today, self.validator.zone)

        async def attempt() -> tuple[RentalModel, VehicleModel]:
            vehicle = await self._vehicle(vehicle_id)
            lock = DistributedLock.for_vehicle(
                self.redis,
                vehicle_id,
                self.lock_ttl,
                blocking_timeout=self.lock_wait,
                poll_interval=self.lock_poll_interval,
            )
            async with lock:
                existing = await self.rentals.get_blocking_for_vehicle(vehicle_id, since=since)
                quote = self.validator.validate(vehicle, existing, start, end, today)
                rental = await self._insert(user_id, vehicle_id, quote, notes, since)
            return rental, vehicle

        try:
            rental, vehicle = await self._retry(attempt, f"booking vehicle {vehicle_id}")
        except LockNotAcquired as exc:
            logger.error(
                "Booking lock for vehicle %s still held after %.1fs", vehicle_id, self.lock_wait
            )
            raise StorageUnavailable() from exc
        logger.info(
            "Rental %s created: vehicle=%s user=%s %s..%s total=%s",
            rental.id,
            vehicle_id,
            user_id,
            rental.start_date,
            rental.end_date,
            rental.total_price,
        )
        return rental, vehicle

    async def _insert(
        self,
        user_id: int,
        vehicle_id: int,
        quote: BookingQuote,
        notes: Optional[str],
        since: date,
    ) -> RentalModel:
        try:
            rental = await self.rentals.create_rental(
                user_id=user_id,
                vehicle_id=vehicle_id,
                notes=notes,
                status=RentalStatus.PENDING,
                **quote.as_record(),
            )
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_overlap_violation(exc):
                logger.exception("Rental insert rejected by storage")
                raise StorageUnavailable() from exc
            logger.info("Exclusion constraint rejected rental on vehicle %s", vehicle_id)
            existing = await self.rentals.get_blocking_for_vehicle(vehicle_id, since=since)
            result = self.validator.detector.find_conflicts(
                quote.range, self.validator.windows(existing)
            )
            raise DateRangeConflict(result.conflicts) from exc
        return rental

    async def change_status(
        self,
        rental_id: int,
        new_status: RentalStatus,
        admin_notes: Optional[str] = None,
    ) -> RentalModel:
        """Admin lifecycle move; raises ``InvalidStateTransition`` if illegal."""
        rental = await self.rentals.get_by_id(rental_id)
        if rental is None:
            raise RentalNotFound()

        previous = RentalStatus(rental.status)
        ensure_transition(previous, new_status)
        rental.status = new_status
        if admin_notes is not None:
            rental.admin_notes = admin_notes
        await self.session.flush()
        logger.info("Rental %s: %s -> %s", rental_id, previous.value, new_status.value)
        return rental
