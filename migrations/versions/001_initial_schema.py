"""Initial schema: users, vehicles, rentals and the no-overlap constraint.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

VEHICLE_TYPES = ("motorcycle", "utv", "guided_tour")
RENTAL_STATUSES = ("pending", "confirmed", "active", "completed", "cancelled")


def upgrade() -> None:
    # btree_gist lets the exclusion constraint mix = on an integer with && on a range
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(120), nullable=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("type", sa.Enum(*VEHICLE_TYPES, name="vehicletype"), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price_per_day", sa.Numeric(10, 2), nullable=False),
        sa.Column("available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("images", postgresql.JSONB, nullable=True),
        sa.Column("specifications", postgresql.JSONB, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("price_per_day >= 0", name="vehicles_price_non_negative"),
    )
    op.create_index("idx_vehicles_type", "vehicles", ["type"])
    op.create_index("idx_vehicles_available", "vehicles", ["available"])

    # ── rentals ───────────────────────────────────────────────────────
    op.create_table(
        "rentals",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "vehicle_id",
            sa.Integer,
            sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column(
            "status",
            sa.Enum(*RENTAL_STATUSES, name="rentalstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("admin_notes", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("end_date > start_date", name="rentals_end_after_start"),
        sa.CheckConstraint("total_price >= 0", name="rentals_price_non_negative"),
    )
    op.create_index("idx_rentals_vehicle_start", "rentals", ["vehicle_id", "start_date"])
    op.create_index("idx_rentals_status", "rentals", ["status"])
    op.create_index("idx_rentals_user", "rentals", ["user_id"])

    # Inclusive ranges: two live rentals sharing even one day conflict.
    op.execute(
        """
        ALTER TABLE rentals ADD CONSTRAINT rentals_no_overlap
        EXCLUDE USING gist (
            vehicle_id WITH =,
            daterange(start_date, end_date, '[]') WITH &&
        )
        WHERE (status IN ('pending', 'confirmed', 'active'))
        """
    )


def downgrade() -> None:
    op.drop_table("rentals")
    op.drop_table("vehicles")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS rentalstatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
