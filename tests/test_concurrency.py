"""
Concurrency safety tests.

Demonstrates:
1. Distributed lock acquire / release semantics, including waiting for
   a holder to release (mocked Redis).
2. Bounded retry only repeats transient faults.
3. The reservation workflow holds the vehicle lock around check-then-insert
   and maps storage-level overlap rejections back to ``DateRangeConflict``.
"""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, call, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, OperationalError

from rentals.domain.entities import InvalidStateTransition
from rentals.domain.enums import RentalStatus
from rentals.domain.errors import (
    DateRangeConflict,
    RentalNotFound,
    StorageUnavailable,
    VehicleNotFound,
    VehicleUnavailable,
)
from rentals.infrastructure.locks import DistributedLock, LockNotAcquired
from rentals.infrastructure.retry import retry_async
from rentals.services.reservations import ReservationService

TODAY = date(2024, 5, 1)
CUSTOMER_ID, OTHER_CUSTOMER_ID = 2, 3
BIKE_ID, UTV_ID = 1, 2


class InMemoryLockRedis:
    """Just enough of Redis for the lock: SET NX EX and the release script."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.set_calls = 0

    async def set(self, key, value, nx=False, ex=None):
        self.set_calls += 1
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.values.get(key) == token:
            del self.values[key]
            return 1
        return 0


async def release_after(lock: DistributedLock, delay: float) -> None:
    await asyncio.sleep(delay)
    await lock.release()


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    def test_vehicle_lock_key(self):
        lock = DistributedLock.for_vehicle(AsyncMock(), 7, ttl_seconds=5)
        assert lock.key == "lock:vehicle:7:booking"
        assert lock.ttl == 5

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args.args[2:] == ("lock:test-key", lock.token)

    @pytest.mark.asyncio
    async def test_release_failure_is_not_raised(self):
        mock_redis = AsyncMock()
        mock_redis.eval = AsyncMock(side_effect=RedisError("connection reset"))

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.release()

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass
        mock_redis.eval.assert_not_called()

    @pytest.mark.asyncio
    async def test_blocking_acquire_waits_for_release(self):
        redis = InMemoryLockRedis()
        holder = DistributedLock(redis, "test-key", ttl_seconds=10)
        assert await holder.acquire()

        waiter = DistributedLock(
            redis, "test-key", ttl_seconds=10, blocking_timeout=2, poll_interval=0.01
        )
        releaser = asyncio.create_task(release_after(holder, 0.05))
        assert await waiter.acquire() is True
        await releaser

        assert redis.values == {"lock:test-key": waiter.token}
        assert redis.set_calls > 2

    @pytest.mark.asyncio
    async def test_blocking_acquire_gives_up_after_timeout(self):
        redis = InMemoryLockRedis()
        holder = DistributedLock(redis, "test-key", ttl_seconds=10)
        assert await holder.acquire()

        waiter = DistributedLock(
            redis, "test-key", ttl_seconds=10, blocking_timeout=0.05, poll_interval=0.01
        )
        with pytest.raises(LockNotAcquired):
            async with waiter:
                pass
        assert redis.values == {"lock:test-key": holder.token}


def _db_down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("server closed the connection"))


class TestRetry:
    @pytest.mark.asyncio
    async def test_recovers_from_transient_fault(self):
        operation = AsyncMock(side_effect=[_db_down(), "ok"])
        on_retry = AsyncMock()

        result = await retry_async(operation, attempts=3, base_delay=0, on_retry=on_retry)

        assert result == "ok"
        assert operation.await_count == 2
        on_retry.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_storage_unavailable(self):
        operation = AsyncMock(side_effect=RedisConnectionError("refused"))

        with pytest.raises(StorageUnavailable) as exc_info:
            await retry_async(operation, attempts=3, base_delay=0)

        assert operation.await_count == 3
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_lock_timeout_is_not_retried(self):
        operation = AsyncMock(side_effect=LockNotAcquired("busy"))

        with pytest.raises(LockNotAcquired):
            await retry_async(operation, attempts=3, base_delay=0)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_business_rejection_is_not_retried(self):
        operation = AsyncMock(side_effect=DateRangeConflict())

        with pytest.raises(DateRangeConflict):
            await retry_async(operation, attempts=3, base_delay=0)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_backoff_doubles(self):
        operation = AsyncMock(side_effect=_db_down())
        with patch("rentals.infrastructure.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(StorageUnavailable):
                await retry_async(operation, attempts=3, base_delay=0.1)

        assert sleep.await_args_list == [call(0.1), call(0.2)]


class TestReservationService:
    """Workflow tests on SQLite with the lock always free unless stated."""

    def service(self, db_session, fake_redis, **kwargs) -> ReservationService:
        kwargs.setdefault("retry_base_delay", 0)
        kwargs.setdefault("lock_poll_interval", 0.01)
        return ReservationService(db_session, fake_redis, **kwargs)

    async def book(self, service, start="2024-06-01", end="2024-06-03", user_id=CUSTOMER_ID):
        return await service.create_reservation(
            user_id=user_id, vehicle_id=BIKE_ID, start=start, end=end, today=TODAY
        )

    @pytest.mark.asyncio
    async def test_creates_pending_rental_under_lock(self, db_session, fake_redis):
        rental, vehicle = await self.book(self.service(db_session, fake_redis))

        assert rental.id is not None
        assert rental.status == RentalStatus.PENDING
        assert rental.start_date == date(2024, 6, 1)
        assert rental.end_date == date(2024, 6, 3)
        assert rental.total_price == Decimal("300.00")
        assert vehicle.id == BIKE_ID

        assert fake_redis.set.await_args.args[0] == "lock:vehicle:1:booking"
        fake_redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_overlapping_booking_conflicts(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        first, _ = await self.book(service)

        with pytest.raises(DateRangeConflict) as exc_info:
            await self.book(service, "2024-06-03", "2024-06-05", user_id=OTHER_CUSTOMER_ID)

        assert [w.rental_id for w in exc_info.value.conflicts] == [first.id]
        # the lock is released on rejection too
        assert fake_redis.eval.await_count == 2

    @pytest.mark.asyncio
    async def test_adjacent_next_day_booking_succeeds(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        await self.book(service)
        rental, _ = await self.book(service, "2024-06-04", "2024-06-05")
        assert rental.total_price == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_booking_waits_for_lock_holder(self, db_session):
        """A booking for other dates queues behind the holder and succeeds."""
        redis = InMemoryLockRedis()
        holder = DistributedLock.for_vehicle(redis, BIKE_ID)
        assert await holder.acquire()
        releaser = asyncio.create_task(release_after(holder, 0.1))

        service = self.service(db_session, redis, lock_wait_seconds=2)
        rental, _ = await self.book(service, "2024-07-01", "2024-07-03")
        await releaser

        assert rental.status == RentalStatus.PENDING
        assert redis.set_calls > 2
        assert redis.values == {}

    @pytest.mark.asyncio
    async def test_lock_held_past_wait_surfaces_as_storage_unavailable(self, db_session, fake_redis):
        fake_redis.set = AsyncMock(return_value=False)
        service = self.service(db_session, fake_redis, lock_wait_seconds=0.05, retry_attempts=3)

        with pytest.raises(StorageUnavailable) as exc_info:
            await self.book(service)

        assert isinstance(exc_info.value.__cause__, LockNotAcquired)
        assert fake_redis.set.await_count > 1
        assert await service.rentals.get_blocking_for_vehicle(BIKE_ID) == []

    @pytest.mark.asyncio
    async def test_redis_outage_is_retried_then_storage_unavailable(self, db_session, fake_redis):
        fake_redis.set = AsyncMock(side_effect=RedisConnectionError("refused"))
        service = self.service(db_session, fake_redis, retry_attempts=3)

        with pytest.raises(StorageUnavailable):
            await self.book(service)

        assert fake_redis.set.await_count == 3

    @pytest.mark.asyncio
    async def test_exclusion_violation_maps_to_conflict(self, db_session, fake_redis):
        """A racing insert that slipped past the lock is caught by storage."""
        service = self.service(db_session, fake_redis)
        racer = SimpleNamespace(
            id=42, start_date=date(2024, 6, 2), end_date=date(2024, 6, 4), status="pending"
        )
        service.rentals.get_blocking_for_vehicle = AsyncMock(side_effect=[[], [racer]])
        service.rentals.create_rental = AsyncMock(
            side_effect=IntegrityError(
                "INSERT INTO rentals",
                {},
                Exception('conflicting key value violates exclusion constraint "rentals_no_overlap"'),
            )
        )

        with pytest.raises(DateRangeConflict) as exc_info:
            await self.book(service)

        assert [w.rental_id for w in exc_info.value.conflicts] == [42]

    @pytest.mark.asyncio
    async def test_other_integrity_error_is_storage_fault(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        service.rentals.create_rental = AsyncMock(
            side_effect=IntegrityError("INSERT INTO rentals", {}, Exception("FOREIGN KEY constraint failed"))
        )

        with pytest.raises(StorageUnavailable):
            await self.book(service)

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        with pytest.raises(VehicleNotFound):
            await service.create_reservation(
                user_id=CUSTOMER_ID, vehicle_id=999, start="2024-06-01", end="2024-06-03", today=TODAY
            )
        fake_redis.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_vehicle(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        with pytest.raises(VehicleUnavailable):
            await service.create_reservation(
                user_id=CUSTOMER_ID, vehicle_id=UTV_ID, start="2024-06-01", end="2024-06-03", today=TODAY
            )

    @pytest.mark.asyncio
    async def test_quote_does_not_persist(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        quote = await service.quote(BIKE_ID, "2024-06-01", "2024-06-03", TODAY)

        assert quote.total_price == Decimal("300.00")
        assert await service.rentals.get_blocking_for_vehicle(BIKE_ID) == []
        fake_redis.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_change_status_follows_lifecycle(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        rental, _ = await self.book(service)

        updated = await service.change_status(rental.id, RentalStatus.CONFIRMED, "deposit paid")
        assert updated.status == RentalStatus.CONFIRMED
        assert updated.admin_notes == "deposit paid"

        with pytest.raises(InvalidStateTransition):
            await service.change_status(rental.id, RentalStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_change_status_unknown_rental(self, db_session, fake_redis):
        with pytest.raises(RentalNotFound):
            await self.service(db_session, fake_redis).change_status(999, RentalStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_cancelled_rental_frees_its_dates(self, db_session, fake_redis):
        service = self.service(db_session, fake_redis)
        rental, _ = await self.book(service)
        await service.change_status(rental.id, RentalStatus.CANCELLED)
        await db_session.commit()

        rebooked, _ = await self.book(service, user_id=OTHER_CUSTOMER_ID)
        assert rebooked.id != rental.id
        assert rebooked.status == RentalStatus.PENDING
