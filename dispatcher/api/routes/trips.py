"""
Trip endpoints
==============

POST /api/v1/trips                  -- reserve a vehicle (returns 201)
GET  /api/v1/trips                  -- list trips, newest first
GET  /api/v1/trips/{trip_id}        -- trip status and timestamps
PUT  /api/v1/trips/{trip_id}/activate
PUT  /api/v1/trips/{trip_id}/end    -- complete and settle; safe to retry
PUT  /api/v1/trips/{trip_id}/cancel
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from dispatcher.api.dependencies import get_lifecycle
from dispatcher.api.middleware import RATE_LIMIT, limiter
from dispatcher.api.schemas import (
    ErrorResponse,
    SettlementFailedResponse,
    SettlementResponse,
    TripCreatedResponse,
    TripCreateRequest,
    TripResponse,
)
from dispatcher.domain.enums import TripStatus
from dispatcher.services.trip_lifecycle import TripLifecycle

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post(
    "",
    status_code=201,
    response_model=TripCreatedResponse,
    summary="Reserve a vehicle for a rider",
    responses={409: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def start_trip(
    request: Request,
    body: TripCreateRequest,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    trip = await lifecycle.start_trip(body.rider_id, body.vehicle_id)
    return TripCreatedResponse(trip_id=trip.id)


@router.get(
    "",
    response_model=list[TripResponse],
    summary="List trips",
)
@limiter.limit(RATE_LIMIT)
async def list_trips(
    request: Request,
    status: Optional[TripStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_trips(status=status, limit=limit, offset=offset)


@router.get(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Get a trip",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def get_trip(
    request: Request,
    trip_id: UUID,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.get_trip(trip_id)


@router.put(
    "/{trip_id}/activate",
    response_model=TripResponse,
    summary="Activate a reserved trip",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def activate_trip(
    request: Request,
    trip_id: UUID,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.activate_trip(trip_id)


@router.put(
    "/{trip_id}/end",
    response_model=SettlementResponse,
    summary="End a trip and create its payment",
    description=(
        "Completes an ACTIVE trip, computes the fare from the vehicle's "
        "current tariff and asks billing for a payment.  If settlement fails "
        "(502) the trip stays COMPLETED; calling this endpoint again replays "
        "settlement without touching the trip."
    ),
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": SettlementFailedResponse},
    },
)
@limiter.limit(RATE_LIMIT)
async def end_trip(
    request: Request,
    trip_id: UUID,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.end_trip(trip_id)


@router.put(
    "/{trip_id}/cancel",
    response_model=TripResponse,
    summary="Cancel a reserved or active trip",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def cancel_trip(
    request: Request,
    trip_id: UUID,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.cancel_trip(trip_id)
