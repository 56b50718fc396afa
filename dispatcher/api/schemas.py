"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from dispatcher.domain.enums import SettlementStage, TripStatus


# ── Requests ──────────────────────────────────────────────────────────


class TripCreateRequest(BaseModel):
    rider_id: UUID
    vehicle_id: UUID


# ── Responses ─────────────────────────────────────────────────────────


class TripCreatedResponse(BaseModel):
    trip_id: UUID


class TripResponse(BaseModel):
    id: UUID
    rider_id: UUID
    vehicle_id: UUID
    status: TripStatus
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SettlementResponse(BaseModel):
    trip_id: UUID
    payment_id: UUID
    payment_token: str
    amount: float

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    error: str
    retryable: bool = False


class SettlementFailedResponse(ErrorResponse):
    """502 body of end-trip: the trip is completed but not yet paid for."""

    trip_id: UUID
    stage: SettlementStage
    cause: Optional[str] = None
