"""FastAPI dependency injection helpers."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.config import settings
from rentals.infrastructure.database import async_session_factory
from rentals.infrastructure.models import UserModel
from rentals.infrastructure.redis_client import get_redis
from rentals.infrastructure.repositories import UserRepository
from rentals.services.reservations import ReservationService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_today() -> date:
    """Current calendar day in the reference zone."""
    return datetime.now(ZoneInfo(settings.reference_timezone)).date()


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> UserModel:
    """Resolve the caller from the id the identity proxy forwards."""
    raw = request.headers.get(settings.auth_user_header)
    try:
        user_id = int(raw) if raw else None
    except ValueError:
        user_id = None
    user = await UserRepository(db).get_by_id(user_id) if user_id else None
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


async def get_reservation_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> ReservationService:
    return ReservationService(db, redis)
