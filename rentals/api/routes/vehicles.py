"""
Vehicle endpoints
=================

GET    /api/v1/vehicles                         -- list (filters: type, available)
GET    /api/v1/vehicles/{vehicle_id}            -- vehicle details
GET    /api/v1/vehicles/{vehicle_id}/availability -- upcoming booked windows
POST   /api/v1/vehicles/{vehicle_id}/quote      -- validate + price, no booking
POST   /api/v1/vehicles                         -- create (admin)
PUT    /api/v1/vehicles/{vehicle_id}            -- update (admin)
DELETE /api/v1/vehicles/{vehicle_id}            -- delete (admin)
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import (
    get_db,
    get_reservation_service,
    get_today,
    require_admin,
)
from rentals.api.middleware import limiter
from rentals.api.schemas import (
    AvailabilityWindow,
    MessageResponse,
    QuoteRequest,
    QuoteResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)
from rentals.config import settings
from rentals.domain.enums import VehicleType
from rentals.infrastructure.models import UserModel
from rentals.infrastructure.repositories import RentalRepository, VehicleRepository
from rentals.services.reservations import ReservationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get(
    "",
    response_model=list[VehicleResponse],
    summary="List vehicles",
)
@limiter.limit(settings.rate_limit)
async def list_vehicles(
    request: Request,
    vehicle_type: Optional[VehicleType] = Query(None, alias="type"),
    available: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).list_vehicles(vehicle_type, available)


@router.get(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get a vehicle",
)
@limiter.limit(settings.rate_limit)
async def get_vehicle(
    request: Request,
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleRepository(db).get_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


@router.get(
    "/{vehicle_id}/availability",
    response_model=list[AvailabilityWindow],
    summary="Booked date windows from today on",
)
@limiter.limit(settings.rate_limit)
async def get_availability(
    request: Request,
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
):
    if not await VehicleRepository(db).get_by_id(vehicle_id):
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return await RentalRepository(db).get_blocking_for_vehicle(vehicle_id, since=today)


@router.post(
    "/{vehicle_id}/quote",
    response_model=QuoteResponse,
    summary="Check dates and price a booking without creating it",
    description=(
        "Runs exactly the rules used when a rental is created, so a listing "
        "page can pre-check a selection.  The create call stays authoritative."
    ),
)
@limiter.limit(settings.rate_limit)
async def quote_booking(
    request: Request,
    vehicle_id: int,
    body: QuoteRequest,
    service: ReservationService = Depends(get_reservation_service),
    today: date = Depends(get_today),
):
    quote = await service.quote(vehicle_id, body.start_date, body.end_date, today)
    return QuoteResponse(
        vehicle_id=vehicle_id,
        start=quote.start,
        end=quote.end,
        day_count=quote.day_count,
        total_price=quote.total_price,
    )


# ── Fleet management (admin) ─────────────────────────────────────────


@router.post(
    "",
    status_code=201,
    response_model=VehicleResponse,
    summary="Create a vehicle",
)
@limiter.limit(settings.rate_limit)
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: UserModel = Depends(require_admin),
):
    vehicle = await VehicleRepository(db).create(**body.model_dump())
    logger.info("Vehicle %s created by admin %s", vehicle.id, admin.id)
    return vehicle


@router.put(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Update a vehicle",
    description="Changing the daily rate never re-prices existing rentals.",
)
@limiter.limit(settings.rate_limit)
async def update_vehicle(
    request: Request,
    vehicle_id: int,
    body: VehicleUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: UserModel = Depends(require_admin),
):
    repo = VehicleRepository(db)
    vehicle = await repo.get_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return await repo.update(vehicle, body.model_dump(exclude_unset=True))


@router.delete(
    "/{vehicle_id}",
    response_model=MessageResponse,
    summary="Delete a vehicle",
)
@limiter.limit(settings.rate_limit)
async def delete_vehicle(
    request: Request,
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    admin: UserModel = Depends(require_admin),
):
    repo = VehicleRepository(db)
    vehicle = await repo.get_by_id(vehicle_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    await repo.delete(vehicle)
    logger.info("Vehicle %s deleted by admin %s", vehicle_id, admin.id)
    return MessageResponse(message="Vehicle deleted successfully")
