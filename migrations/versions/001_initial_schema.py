"""Initial schema: trips table with the open-trip uniqueness indexes.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

OPEN_TRIP_CLAUSE = "status IN ('reserved', 'active')"


def upgrade() -> None:
    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("rider_id", sa.Uuid, nullable=False),
        sa.Column("vehicle_id", sa.Uuid, nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('reserved', 'active', 'completed', 'cancelled')",
            name="ck_trips_status",
        ),
    )

    # At most one reserved/active trip per rider and per vehicle
    op.create_index(
        "uq_trips_active_rider",
        "trips",
        ["rider_id"],
        unique=True,
        postgresql_where=sa.text(OPEN_TRIP_CLAUSE),
    )
    op.create_index(
        "uq_trips_active_vehicle",
        "trips",
        ["vehicle_id"],
        unique=True,
        postgresql_where=sa.text(OPEN_TRIP_CLAUSE),
    )

    op.create_index("idx_trips_status", "trips", ["status"])
    op.create_index("idx_trips_rider", "trips", ["rider_id"])
    op.create_index("idx_trips_created", "trips", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_trips_created", table_name="trips")
    op.drop_index("idx_trips_rider", table_name="trips")
    op.drop_index("idx_trips_status", table_name="trips")
    op.drop_index("uq_trips_active_vehicle", table_name="trips")
    op.drop_index("uq_trips_active_rider", table_name="trips")
    op.drop_table("trips")
