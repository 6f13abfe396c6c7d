"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``     -- customer / admin profiles (identity lives upstream)
* ``vehicles``  -- rentable fleet with a per-day rate and availability flag
* ``rentals``   -- reservations of one vehicle by one user

Indexes
-------
* **B-Tree** on ``vehicles.type``, ``vehicles.available``, ``rentals.status``,
  ``rentals.user_id`` and ``(rentals.vehicle_id, rentals.start_date)``.
* The ``rentals_no_overlap`` exclusion constraint (GiST over vehicle and
  inclusive date range, blocking statuses only) is PostgreSQL-specific and
  is created by the migration, not by ``metadata.create_all``.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from .database import Base
from rentals.domain.enums import RentalStatus, VehicleType


def _values(enum_cls):
    return [member.value for member in enum_cls]


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=True)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(40), nullable=True)
    role = Column(String(20), default="customer", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __mapper_args__ = {"eager_defaults": True}


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(
        Enum(VehicleType, name="vehicletype", values_callable=_values),
        nullable=False,
    )
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    available = Column(Boolean, default=True, nullable=False)

    # Presentation-owned; never inspected by the booking core
    images = Column(JSON, nullable=True)
    specifications = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_vehicles_type", "type"),
        Index("idx_vehicles_available", "available"),
    )
    __mapper_args__ = {"eager_defaults": True}


class RentalModel(Base):
    __tablename__ = "rentals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    vehicle_id = Column(
        Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False
    )

    # Date-only semantics; day boundaries are applied by the domain layer
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    status = Column(
        Enum(RentalStatus, name="rentalstatus", values_callable=_values),
        default=RentalStatus.PENDING,
        nullable=False,
    )
    total_price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_rentals_vehicle_start", "vehicle_id", "start_date"),
        Index("idx_rentals_status", "status"),
        Index("idx_rentals_user", "user_id"),
    )
    __mapper_args__ = {"eager_defaults": True}
