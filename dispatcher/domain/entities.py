"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Trip``: enforces valid lifecycle transitions
  (RESERVED -> ACTIVE -> COMPLETED, RESERVED | ACTIVE -> CANCELLED) and
  stamps the matching timestamp in the same step.
- ``SettlementResult`` is the value handed back when a trip is paid for;
  it is never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from .enums import (
    OPEN_STATUSES,
    TRANSITION_TIMESTAMPS,
    TRIP_TRANSITIONS,
    TripStatus,
)
from .errors import InvalidStateTransition


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Trip:
    id: UUID
    rider_id: UUID
    vehicle_id: UUID
    created_at: datetime
    status: TripStatus = TripStatus.RESERVED
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def can_transition_to(self, new_status: TripStatus) -> bool:
        return new_status in TRIP_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: TripStatus, at: datetime) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        if not self.can_transition_to(new_status):
            raise InvalidStateTransition(self.status, new_status)
        setattr(self, TRANSITION_TIMESTAMPS[new_status], at)
        self.status = new_status

    def elapsed(self, now: datetime) -> timedelta:
        """
        Billable duration of the trip.

        ``ended_at - started_at`` when the trip went through activation and
        completion; otherwise everything since the reservation.
        """
        if self.started_at is not None and self.ended_at is not None:
            return self.ended_at - self.started_at
        return now - self.created_at


@dataclass(frozen=True)
class SettlementResult:
    trip_id: UUID
    payment_id: UUID
    payment_token: str
    amount: float
