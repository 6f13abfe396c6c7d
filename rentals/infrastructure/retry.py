"""
Bounded retry with exponential backoff for transient storage faults.

Only faults listed in ``TRANSIENT_ERRORS`` are retried: a dropped
database connection or a Redis connection error or timeout.  A busy
booking lock is not one of them; the lock itself waits for its holder.
Business rejections (``BookingError``) propagate on the first attempt.
When every attempt fails the caller gets ``StorageUnavailable``; the
cause is logged, never returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy.exc import InterfaceError, OperationalError

from rentals.domain.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    RedisConnectionError,
    RedisTimeoutError,
)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.05,
    on_retry: Optional[Callable[[], Awaitable[None]]] = None,
    label: str = "storage operation",
) -> T:
    """Run *operation* up to *attempts* times.

    *on_retry* runs after each transient failure (e.g. a session rollback)
    before sleeping ``base_delay * 2 ** n`` seconds.
    """
    attempts = max(1, attempts)
    attempt = 1
    while True:
        try:
            return await operation()
        except TRANSIENT_ERRORS as exc:
            if on_retry is not None:
                await on_retry()
            if attempt == attempts:
                logger.exception(
                    "%s failed after %d attempt(s)", label, attempts
                )
                raise StorageUnavailable() from exc
            delay = base_delay * 2 ** (attempt - 1)
            logger.warning(
                "%s hit a transient fault (%s); retry %d/%d in %.2fs",
                label,
                type(exc).__name__,
                attempt,
                attempts - 1,
                delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
