"""
Domain error taxonomy.

Every failure the dispatcher reports is a ``DispatcherError``.  The API layer
maps each class to an HTTP status; nothing in the domain knows about HTTP.

``retryable`` tells a client whether re-issuing the same request can help:
transport problems can, rule violations cannot.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from .enums import SettlementStage, TripStatus


class DispatcherError(Exception):
    """Base class for every domain-level failure."""

    retryable: bool = False


# ── Trip store ────────────────────────────────────────────────────────


class NotFoundError(DispatcherError):
    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class TripNotFound(NotFoundError):
    def __init__(self, trip_id: UUID):
        super().__init__(f"trip {trip_id}")
        self.trip_id = trip_id


class ConflictError(DispatcherError):
    """A reservation would give a rider or vehicle a second open trip."""


class RiderHasActiveTrip(ConflictError):
    def __init__(self, rider_id: UUID):
        super().__init__(f"rider {rider_id} already has an active trip")
        self.rider_id = rider_id


class VehicleInUse(ConflictError):
    def __init__(self, vehicle_id: UUID):
        super().__init__(f"vehicle {vehicle_id} is already in use")
        self.vehicle_id = vehicle_id


class InvalidStateTransition(DispatcherError):
    """Raised when a trip status change violates the state machine."""

    def __init__(self, current: TripStatus, target: TripStatus):
        super().__init__(
            f"Cannot transition from {current.value} to {target.value}"
        )
        self.current = current
        self.target = target


class StorageError(DispatcherError):
    """Wraps a database failure.  Never rendered with its detail."""


# ── Collaborators ─────────────────────────────────────────────────────


class ServiceUnavailable(DispatcherError):
    retryable = True

    def __init__(self, service: str):
        super().__init__(f"service unavailable: {service}")
        self.service = service


class ServiceError(DispatcherError):
    def __init__(self, service: str, detail: str):
        super().__init__(f"service error: {service} - {detail}")
        self.service = service
        self.detail = detail


class PaymentAlreadyProcessed(DispatcherError):
    def __init__(self, trip_id: UUID):
        super().__init__(f"payment for trip {trip_id} already processed")
        self.trip_id = trip_id


# ── Saga ──────────────────────────────────────────────────────────────


class SettlementFailed(DispatcherError):
    """
    Settlement broke down after the trip was already completed.

    The trip stays ``completed``; re-issuing end-trip replays settlement.
    """

    def __init__(
        self,
        trip_id: UUID,
        stage: SettlementStage,
        cause: Optional[DispatcherError] = None,
    ):
        super().__init__(f"settlement of trip {trip_id} failed after {stage.value}: {cause}")
        self.trip_id = trip_id
        self.stage = stage
        self.cause = cause

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return bool(self.cause and self.cause.retryable)
