"""
Admin / observability endpoints
===============================

GET   /api/v1/admin/rentals                    -- all rentals (filter: status)
PATCH /api/v1/admin/rentals/{rental_id}/status -- lifecycle transition
GET   /api/v1/admin/customers                  -- profiles with booking totals
GET   /api/v1/admin/health                     -- simple health check
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import get_db, get_reservation_service, require_admin
from rentals.api.middleware import limiter
from rentals.api.schemas import (
    CustomerResponse,
    HealthResponse,
    RentalResponse,
    RentalStatusUpdateRequest,
)
from rentals.config import settings
from rentals.domain.enums import RentalStatus
from rentals.infrastructure.models import UserModel
from rentals.infrastructure.repositories import (
    RentalRepository,
    UserRepository,
    VehicleRepository,
)
from rentals.services.reservations import ReservationService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/rentals",
    response_model=list[RentalResponse],
    summary="List all rentals, newest first",
)
@limiter.limit(settings.rate_limit)
async def list_rentals(
    request: Request,
    status: Optional[RentalStatus] = None,
    db: AsyncSession = Depends(get_db),
    admin: UserModel = Depends(require_admin),
):
    rows = await RentalRepository(db).list_all(status)
    return [RentalResponse.build(rental, vehicle) for rental, vehicle in rows]


@router.patch(
    "/rentals/{rental_id}/status",
    response_model=RentalResponse,
    summary="Move a rental through its lifecycle",
    description=(
        "pending -> confirmed -> active -> completed; any of pending, "
        "confirmed or active -> cancelled.  Illegal moves return 409."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_rental_status(
    request: Request,
    rental_id: int,
    body: RentalStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    service: ReservationService = Depends(get_reservation_service),
    admin: UserModel = Depends(require_admin),
):
    rental = await service.change_status(rental_id, body.status, body.admin_notes)
    vehicle = await VehicleRepository(db).get_by_id(rental.vehicle_id)
    return RentalResponse.build(rental, vehicle)


@router.get(
    "/customers",
    response_model=list[CustomerResponse],
    summary="List customers with rental count and total booked",
)
@limiter.limit(settings.rate_limit)
async def list_customers(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: UserModel = Depends(require_admin),
):
    rows = await UserRepository(db).list_customers()
    return [
        CustomerResponse(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            created_at=user.created_at,
            rental_count=count,
            total_spent=total,
        )
        for user, count, total in rows
    ]


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
