"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The PostgreSQL exclusion constraint only
exists in the migration, so here the overlap guarantee rests on the
booking validator and the (mocked) per-vehicle lock.
"""

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from rentals.domain.enums import VehicleType
from rentals.infrastructure.database import Base
from rentals.infrastructure.models import UserModel, VehicleModel


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Injected "today" for every API test; fixtures book June 2024.
TODAY = date(2024, 5, 1)

ADMIN_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID = 1, 2, 3
BIKE_ID, UTV_ID = 1, 2


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables on a fresh in-memory DB, yield a factory, then drop."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(session_factory) -> None:
    """One admin, two customers, an available bike and an unavailable UTV."""
    async with session_factory() as session:
        session.add_all(
            [
                UserModel(id=ADMIN_ID, full_name="Admin", email="admin@example.com", role="admin"),
                UserModel(id=CUSTOMER_ID, full_name="Ana Ruiz", email="ana@example.com"),
                UserModel(id=OTHER_CUSTOMER_ID, full_name="Ben Cole", email="ben@example.com"),
                VehicleModel(
                    id=BIKE_ID,
                    type=VehicleType.MOTORCYCLE,
                    name="Honda CRF300L",
                    price_per_day=Decimal("100.00"),
                    available=True,
                    specifications={"engine": "286cc"},
                ),
                VehicleModel(
                    id=UTV_ID,
                    type=VehicleType.UTV,
                    name="Polaris RZR",
                    price_per_day=Decimal("250.00"),
                    available=False,
                ),
            ]
        )
        await session.commit()


@pytest_asyncio.fixture
async def db_session(session_factory, seeded) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> AsyncMock:
    """Redis stand-in whose lock is always free."""
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.eval = AsyncMock(return_value=1)
    return redis


@pytest_asyncio.fixture
async def client(session_factory, seeded, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient backed by SQLite, the fake Redis and a fixed clock."""
    from rentals.api.app import create_app
    from rentals.api.dependencies import get_db, get_today
    from rentals.infrastructure.redis_client import get_redis

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return fake_redis

    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis
    app.dependency_overrides[get_today] = lambda: TODAY

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
