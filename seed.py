"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin and 5 customer profiles
  - 8 sample vehicles (motorcycles, UTVs, guided tours)
  - 7 sample rentals (mix of pending, confirmed, active, completed, cancelled)

Rental dates are relative to today and every live rental is priced and
checked by ``BookingValidator``, so seeded data never overlaps.
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import text

from rentals.config import settings
from rentals.domain.booking import BookingValidator
from rentals.domain.enums import BLOCKING_STATUSES, RentalStatus, VehicleType
from rentals.infrastructure.database import async_session_factory, engine
from rentals.infrastructure.models import RentalModel, UserModel, VehicleModel


USERS = [
    {"full_name": "Fleet Admin", "email": "admin@example.com", "role": "admin"},
    {"full_name": "Lucia Fernandez", "email": "lucia@example.com", "phone": "+1 555 0101"},
    {"full_name": "Marcus Webb", "email": "marcus@example.com", "phone": "+1 555 0102"},
    {"full_name": "Ines Duarte", "email": "ines@example.com"},
    {"full_name": "Tomas Novak", "email": "tomas@example.com", "phone": "+1 555 0104"},
    {"full_name": "Grace Okafor", "email": "grace@example.com"},
]

VEHICLES = [
    {
        "type": VehicleType.MOTORCYCLE, "name": "Honda CRF300L", "price_per_day": "85.00",
        "specifications": {"engine": "286cc", "seats": 1, "license": "A2"},
    },
    {
        "type": VehicleType.MOTORCYCLE, "name": "Yamaha Tenere 700", "price_per_day": "140.00",
        "specifications": {"engine": "689cc", "seats": 2, "license": "A"},
    },
    {
        "type": VehicleType.MOTORCYCLE, "name": "Royal Enfield Himalayan", "price_per_day": "95.00",
        "specifications": {"engine": "411cc", "seats": 2},
    },
    {
        "type": VehicleType.UTV, "name": "Polaris RZR XP 1000", "price_per_day": "320.00",
        "specifications": {"seats": 2, "drive": "4x4"},
    },
    {
        "type": VehicleType.UTV, "name": "Can-Am Maverick X3", "price_per_day": "360.00",
        "specifications": {"seats": 4, "drive": "4x4"},
    },
    {
        "type": VehicleType.UTV, "name": "Kawasaki Teryx KRX", "price_per_day": "300.00",
        "available": False,
        "specifications": {"seats": 2, "note": "in maintenance"},
    },
    {
        "type": VehicleType.GUIDED_TOUR, "name": "Canyon Sunset Ride", "price_per_day": "180.00",
        "specifications": {"duration": "4h", "group_size": 6},
    },
    {
        "type": VehicleType.GUIDED_TOUR, "name": "Desert Full-Day Expedition", "price_per_day": "420.00",
        "specifications": {"duration": "9h", "group_size": 8, "meals": True},
    },
]

# (user index, vehicle index, start offset, end offset, status)
RENTALS = [
    (1, 0, 3, 6, RentalStatus.PENDING),
    (2, 0, 10, 12, RentalStatus.CONFIRMED),
    (3, 3, 0, 2, RentalStatus.ACTIVE),
    (4, 6, 5, 6, RentalStatus.CONFIRMED),
    (5, 1, -20, -15, RentalStatus.COMPLETED),
    (1, 4, 7, 9, RentalStatus.CANCELLED),
    (2, 4, 7, 8, RentalStatus.PENDING),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(**u)
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicle_models = []
        for v in VEHICLES:
            m = VehicleModel(
                type=v["type"],
                name=v["name"],
                price_per_day=Decimal(v["price_per_day"]),
                available=v.get("available", True),
                images=[],
                specifications=v["specifications"],
            )
            session.add(m)
            vehicle_models.append(m)
        await session.flush()
        print(f"  Created {len(vehicle_models)} vehicles")

        # ── Rentals ───────────────────────────────────────────────────
        validator = BookingValidator(settings.reference_timezone)
        today = date.today()
        booked: dict[int, list[RentalModel]] = {}
        for user_idx, vehicle_idx, start_off, end_off, status in RENTALS:
            vehicle = vehicle_models[vehicle_idx]
            start = today + timedelta(days=start_off)
            end = today + timedelta(days=end_off)
            if status in BLOCKING_STATUSES:
                quote = validator.validate(
                    vehicle, booked.get(vehicle.id, []), start, end, today
                )
                total = quote.total_price
            else:
                total = vehicle.price_per_day * ((end - start).days + 1)
            rental = RentalModel(
                user_id=user_models[user_idx].id,
                vehicle_id=vehicle.id,
                start_date=start,
                end_date=end,
                status=status,
                total_price=total,
            )
            session.add(rental)
            booked.setdefault(vehicle.id, []).append(rental)
        await session.flush()
        print(f"  Created {len(RENTALS)} rentals")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
