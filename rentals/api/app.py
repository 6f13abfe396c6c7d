"""
FastAPI application factory.

* Registers routes for vehicles, rentals and admin.
* Maps booking errors to HTTP responses.
* Closes the Redis pool and DB engine via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rentals.api.errors import register_exception_handlers
from rentals.api.middleware import limiter
from rentals.api.routes import admin, rentals, vehicles
from rentals.config import settings
from rentals.infrastructure.database import engine
from rentals.infrastructure.redis_client import close_redis

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release pooled connections on shutdown."""
    logger.info("Rental API starting (reference zone=%s)", settings.reference_timezone)
    yield
    await close_redis()
    await engine.dispose()
    logger.info("Rental API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Vehicle Rental API",
        description=(
            "Listings and bookings for motorcycles, UTVs and guided tours. "
            "Guarantees that no two live reservations of the same vehicle "
            "overlap, and prices bookings per calendar day."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(rentals.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
