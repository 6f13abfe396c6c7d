"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RentalModel, UserModel, VehicleModel
from rentals.domain.enums import BLOCKING_STATUSES, RentalStatus, VehicleType

# Columns an admin may change through the vehicle update endpoint
VEHICLE_MUTABLE_FIELDS = frozenset(
    {"type", "name", "description", "price_per_day", "available", "images", "specifications"}
)


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_vehicles(
        self,
        vehicle_type: Optional[VehicleType] = None,
        available: Optional[bool] = None,
    ) -> list[VehicleModel]:
        query = select(VehicleModel)
        if vehicle_type is not None:
            query = query.where(VehicleModel.type == vehicle_type)
        if available is not None:
            query = query.where(VehicleModel.available.is_(available))
        query = query.order_by(VehicleModel.created_at.desc(), VehicleModel.id.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def create(self, **fields: Any) -> VehicleModel:
        vehicle = VehicleModel(**fields)
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def update(self, vehicle: VehicleModel, changes: dict[str, Any]) -> VehicleModel:
        for key, value in changes.items():
            if key in VEHICLE_MUTABLE_FIELDS:
                setattr(vehicle, key, value)
        await self.session.flush()
        await self.session.refresh(vehicle)
        return vehicle

    async def delete(self, vehicle: VehicleModel) -> None:
        await self.session.delete(vehicle)
        await self.session.flush()


class RentalRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_rental(
        self,
        *,
        user_id: int,
        vehicle_id: int,
        start_date: date,
        end_date: date,
        total_price: Decimal,
        notes: Optional[str] = None,
        status: RentalStatus = RentalStatus.PENDING,
    ) -> RentalModel:
        rental = RentalModel(
            user_id=user_id,
            vehicle_id=vehicle_id,
            start_date=start_date,
            end_date=end_date,
            total_price=total_price,
            notes=notes,
            status=status,
        )
        self.session.add(rental)
        await self.session.flush()
        return rental

    async def get_by_id(self, rental_id: int) -> Optional[RentalModel]:
        return await self.session.get(RentalModel, rental_id)

    async def get_blocking_for_vehicle(
        self, vehicle_id: int, since: Optional[date] = None
    ) -> list[RentalModel]:
        """Blocking reservations of one vehicle, optionally only those
        still running on or after *since*."""
        conditions = [
            RentalModel.vehicle_id == vehicle_id,
            RentalModel.status.in_(BLOCKING_STATUSES),
        ]
        if since is not None:
            conditions.append(RentalModel.end_date >= since)
        result = await self.session.execute(
            select(RentalModel)
            .where(and_(*conditions))
            .order_by(RentalModel.start_date)
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: int) -> list[tuple[RentalModel, VehicleModel]]:
        result = await self.session.execute(
            select(RentalModel, VehicleModel)
            .join(VehicleModel, VehicleModel.id == RentalModel.vehicle_id)
            .where(RentalModel.user_id == user_id)
            .order_by(RentalModel.start_date)
        )
        return [tuple(row) for row in result.all()]

    async def list_all(
        self, status: Optional[RentalStatus] = None
    ) -> list[tuple[RentalModel, VehicleModel]]:
        query = select(RentalModel, VehicleModel).join(
            VehicleModel, VehicleModel.id == RentalModel.vehicle_id
        )
        if status is not None:
            query = query.where(RentalModel.status == status)
        query = query.order_by(RentalModel.created_at.desc(), RentalModel.id.desc())
        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def list_customers(self) -> list[tuple[UserModel, int, Decimal]]:
        """Every profile with its rental count and total booked amount."""
        result = await self.session.execute(
            select(
                UserModel,
                func.count(RentalModel.id),
                func.coalesce(func.sum(RentalModel.total_price), 0),
            )
            .outerjoin(RentalModel, RentalModel.user_id == UserModel.id)
            .group_by(UserModel.id)
            .order_by(UserModel.created_at.desc(), UserModel.id.desc())
        )
        return [(user, count, Decimal(str(total))) for user, count, total in result.all()]
