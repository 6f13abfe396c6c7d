"""
Redis-based distributed lock.

The reservation service holds one lock per vehicle around the
check-then-insert sequence, so two API processes cannot both pass the
overlap check for the same vehicle before either insert commits.  The
database exclusion constraint remains the final word; the lock just keeps
the common case from ever reaching it.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.  With a ``blocking_timeout`` the
acquire polls until the current holder releases (or its TTL expires),
so concurrent bookings for one vehicle queue instead of failing.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    """The lock stayed held for the whole blocking timeout."""


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 10,
        blocking_timeout: float = 0.0,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.blocking_timeout = blocking_timeout
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    @classmethod
    def for_vehicle(
        cls,
        client: aioredis.Redis,
        vehicle_id: int,
        ttl_seconds: int = 10,
        blocking_timeout: float = 0.0,
        poll_interval: float = 0.05,
    ) -> "DistributedLock":
        return cls(
            client,
            f"vehicle:{vehicle_id}:booking",
            ttl_seconds,
            blocking_timeout=blocking_timeout,
            poll_interval=poll_interval,
        )

    async def acquire(self) -> bool:
        """Try to acquire, polling until ``blocking_timeout`` elapses.

        Returns True on success.  With the default timeout of 0 this is a
        single non-blocking attempt.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.blocking_timeout
        while True:
            if await self.redis.set(self.key, self.token, nx=True, ex=self.ttl):
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua).

        A failed release leaves the key to expire after its TTL.
        """
        try:
            await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        except RedisError:
            logger.warning("Could not release %s; it expires in %ds", self.key, self.ttl)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise LockNotAcquired(
                f"Could not acquire lock: {self.key} within {self.blocking_timeout}s"
            )
        return self

    async def __aexit__(self, *args):
        await self.release()
