"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from rentals.domain.enums import RentalStatus, VehicleType

# Dates are passed through untyped: ISO strings, epoch seconds, or anything
# else, which the domain layer rejects as InvalidDateRange (400).
DateInput = Any


# ── Requests ──────────────────────────────────────────────────────────


class VehicleCreateRequest(BaseModel):
    type: VehicleType
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    price_per_day: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    available: bool = True
    images: list[str] = []
    specifications: dict[str, Any] = {}


class VehicleUpdateRequest(BaseModel):
    type: Optional[VehicleType] = None
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    price_per_day: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    available: Optional[bool] = None
    images: Optional[list[str]] = None
    specifications: Optional[dict[str, Any]] = None


class QuoteRequest(BaseModel):
    start_date: DateInput = None
    end_date: DateInput = None


class RentalCreateRequest(QuoteRequest):
    vehicle_id: int
    notes: Optional[str] = Field(None, max_length=1000)


class RentalStatusUpdateRequest(BaseModel):
    status: RentalStatus
    admin_notes: Optional[str] = Field(None, max_length=2000)


# ── Responses ─────────────────────────────────────────────────────────


class VehicleSummary(BaseModel):
    id: int
    name: str
    type: VehicleType
    price_per_day: Decimal

    model_config = {"from_attributes": True}


class VehicleResponse(VehicleSummary):
    description: Optional[str] = None
    available: bool
    images: Optional[list[str]] = None
    specifications: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class AvailabilityWindow(BaseModel):
    start_date: date
    end_date: date
    status: RentalStatus

    model_config = {"from_attributes": True}


class QuoteResponse(BaseModel):
    vehicle_id: int
    start: datetime
    end: datetime
    day_count: int
    total_price: Decimal


class RentalResponse(BaseModel):
    id: int
    user_id: int
    vehicle_id: int
    start_date: date
    end_date: date
    status: RentalStatus
    total_price: Decimal
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    vehicle: Optional[VehicleSummary] = None

    model_config = {"from_attributes": True}

    @classmethod
    def build(cls, rental: Any, vehicle: Any = None) -> "RentalResponse":
        response = cls.model_validate(rental)
        if vehicle is not None:
            response.vehicle = VehicleSummary.model_validate(vehicle)
        return response


class CustomerResponse(BaseModel):
    id: int
    full_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None
    rental_count: int = 0
    total_spent: Decimal = Decimal("0")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
    detail: str
    conflicts: list[AvailabilityWindow] = []
