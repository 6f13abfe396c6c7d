"""
Rental endpoints
================

POST /api/v1/rentals             -- book a vehicle (201, status pending)
GET  /api/v1/rentals             -- the caller's rentals, by start date
GET  /api/v1/rentals/{rental_id} -- one of the caller's rentals
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import (
    get_current_user,
    get_db,
    get_reservation_service,
    get_today,
)
from rentals.api.middleware import limiter
from rentals.api.schemas import ErrorResponse, RentalCreateRequest, RentalResponse
from rentals.config import settings
from rentals.infrastructure.models import UserModel
from rentals.infrastructure.repositories import RentalRepository, VehicleRepository
from rentals.services.reservations import ReservationService

router = APIRouter(prefix="/rentals", tags=["rentals"])


@router.post(
    "",
    status_code=201,
    response_model=RentalResponse,
    summary="Book a vehicle",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or past dates"},
        404: {"model": ErrorResponse, "description": "Unknown vehicle"},
        409: {"model": ErrorResponse, "description": "Unavailable or already booked"},
        500: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
@limiter.limit(settings.rate_limit)
async def create_rental(
    request: Request,
    body: RentalCreateRequest,
    user: UserModel = Depends(get_current_user),
    service: ReservationService = Depends(get_reservation_service),
    today: date = Depends(get_today),
):
    notes = body.notes.strip() if body.notes else None
    rental, vehicle = await service.create_reservation(
        user_id=user.id,
        vehicle_id=body.vehicle_id,
        start=body.start_date,
        end=body.end_date,
        today=today,
        notes=notes or None,
    )
    return RentalResponse.build(rental, vehicle)


@router.get(
    "",
    response_model=list[RentalResponse],
    summary="List my rentals",
)
@limiter.limit(settings.rate_limit)
async def list_my_rentals(
    request: Request,
    user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await RentalRepository(db).list_for_user(user.id)
    return [RentalResponse.build(rental, vehicle) for rental, vehicle in rows]


@router.get(
    "/{rental_id}",
    response_model=RentalResponse,
    summary="Get one of my rentals",
)
@limiter.limit(settings.rate_limit)
async def get_rental(
    request: Request,
    rental_id: int,
    user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rental = await RentalRepository(db).get_by_id(rental_id)
    # Other users' rentals are reported as missing, not forbidden
    if not rental or (rental.user_id != user.id and user.role != "admin"):
        raise HTTPException(status_code=404, detail="Rental not found")
    vehicle = await VehicleRepository(db).get_by_id(rental.vehicle_id)
    return RentalResponse.build(rental, vehicle)
