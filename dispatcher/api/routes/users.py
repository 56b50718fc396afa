"""
Rider-scoped trip endpoints
===========================

GET /api/v1/users/{rider_id}/trips        -- every trip of a rider
GET /api/v1/users/{rider_id}/trips/active -- the rider's open trip, if any
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from dispatcher.api.dependencies import get_lifecycle
from dispatcher.api.middleware import RATE_LIMIT, limiter
from dispatcher.api.schemas import ErrorResponse, TripResponse
from dispatcher.domain.errors import NotFoundError
from dispatcher.services.trip_lifecycle import TripLifecycle

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/{rider_id}/trips",
    response_model=list[TripResponse],
    summary="List a rider's trips",
)
@limiter.limit(RATE_LIMIT)
async def list_rider_trips(
    request: Request,
    rider_id: UUID,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_rider_trips(rider_id)


@router.get(
    "/{rider_id}/trips/active",
    response_model=TripResponse,
    summary="Get the rider's reserved or active trip",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def get_active_trip(
    request: Request,
    rider_id: UUID,
    lifecycle: TripLifecycle = Depends(get_lifecycle),
):
    trip = await lifecycle.active_trip_for_rider(rider_id)
    if trip is None:
        raise NotFoundError(f"active trip for rider {rider_id}")
    return trip
