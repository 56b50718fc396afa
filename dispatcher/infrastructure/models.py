"""
SQLAlchemy ORM models.

Tables
------
* ``trips`` -- one row per rental session, never deleted

Indexes
-------
* **Partial unique** on ``rider_id`` and on ``vehicle_id`` restricted to
  ``status IN ('reserved', 'active')``: the database itself refuses a second
  open trip for the same rider or vehicle, so concurrent reservations cannot
  both commit.
* **B-Tree** on ``status`` and ``created_at`` for the listing endpoints.
"""

from sqlalchemy import Column, DateTime, Enum, Index, Uuid, text

from .database import Base
from dispatcher.domain.enums import TripStatus

OPEN_TRIP_CLAUSE = "status IN ('reserved', 'active')"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Uuid, primary_key=True)
    rider_id = Column(Uuid, nullable=False)
    vehicle_id = Column(Uuid, nullable=False)

    # Stored as lowercase strings so the partial indexes can match them
    status = Column(
        Enum(
            TripStatus,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        default=TripStatus.RESERVED,
        nullable=False,
    )

    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_trips_active_rider",
            "rider_id",
            unique=True,
            postgresql_where=text(OPEN_TRIP_CLAUSE),
            sqlite_where=text(OPEN_TRIP_CLAUSE),
        ),
        Index(
            "uq_trips_active_vehicle",
            "vehicle_id",
            unique=True,
            postgresql_where=text(OPEN_TRIP_CLAUSE),
            sqlite_where=text(OPEN_TRIP_CLAUSE),
        ),
        Index("idx_trips_status", "status"),
        Index("idx_trips_rider", "rider_id"),
        Index("idx_trips_created", "created_at"),
    )
