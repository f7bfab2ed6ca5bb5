"""Initial schema: bookings, tariff settings and the driver location row.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_contact", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(120), nullable=True),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("pickup_lat", sa.Float, nullable=True),
        sa.Column("pickup_lng", sa.Float, nullable=True),
        sa.Column("dropoff_location", sa.String(255), nullable=False),
        sa.Column("dropoff_lat", sa.Float, nullable=True),
        sa.Column("dropoff_lng", sa.Float, nullable=True),
        sa.Column("wait_and_return", sa.Boolean, default=False, nullable=False),
        sa.Column("ride_datetime", sa.DateTime, nullable=False),
        sa.Column("ride_end_datetime", sa.DateTime, nullable=False),
        sa.Column("ride_duration_minutes", sa.Float, nullable=True),
        sa.Column("passengers", sa.Integer, nullable=False),
        sa.Column("waiting_minutes", sa.Float, default=0, nullable=False),
        sa.Column("distance_km", sa.Float, nullable=False),
        sa.Column("estimated_pickup_minutes", sa.Integer, nullable=True),
        sa.Column("fare_amount", sa.Float, nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "accepted", "declined", name="bookingstatus"),
            default="pending",
            nullable=False,
        ),
        sa.Column("driver_response", sa.String(32), nullable=True),
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
        sa.CheckConstraint(
            "ride_end_datetime > ride_datetime", name="ck_bookings_window"
        ),
    )
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_contact", "bookings", ["customer_contact"])
    op.create_index("idx_bookings_ride_datetime", "bookings", ["ride_datetime"])

    # ── settings ──────────────────────────────────────────────────────
    op.create_table(
        "settings",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
    )

    # ── driver_status ─────────────────────────────────────────────────
    op.create_table(
        "driver_status",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("driver_lat", sa.Float, nullable=False),
        sa.Column("driver_lng", sa.Float, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("driver_status")
    op.drop_table("settings")
    op.drop_table("bookings")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
