"""
Trip Lifecycle Orchestrator
===========================

Sequences the calls that start, activate, end and cancel a trip across the
trip store, the vehicle/tariff service and the billing service.

End-trip saga
-------------
1. ``trips.complete``            -- point of no return
2. ``trips.get``                 -- timestamps + vehicle id
3. ``vehicles.get_vehicle`` then ``vehicles.get_tariff``
4. ``calculate_fare``
5. ``billing.create_payment``

The trip is completed *before* any money is computed: a failure later on
leaves a closed-but-unpaid trip, never an open one.  Steps 2-5 are wrapped in
``SettlementFailed`` and can be replayed by calling ``end_trip`` again; the
completed trip is detected and step 1 is skipped.  Billing itself refuses a
second payment per trip, so step 5 is safe to repeat.

There is no compensation step and no persisted saga state; everything after
step 1 is recomputed on replay.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from dispatcher.domain.entities import SettlementResult, Trip, utcnow
from dispatcher.domain.enums import SettlementStage, TripStatus
from dispatcher.domain.errors import (
    DispatcherError,
    InvalidStateTransition,
    PaymentAlreadyProcessed,
    SettlementFailed,
)
from dispatcher.domain.fare import billable_minutes, calculate_fare
from dispatcher.domain.interfaces import (
    BillingClient,
    PaymentInfo,
    TripStore,
    VehicleClient,
)

logger = logging.getLogger(__name__)


class TripLifecycle:
    def __init__(
        self,
        trips: TripStore,
        vehicles: VehicleClient,
        billing: BillingClient,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.trips = trips
        self.vehicles = vehicles
        self.billing = billing
        self._clock = clock

    # ── Trip state changes ────────────────────────────────────────

    async def start_trip(self, rider_id: UUID, vehicle_id: UUID) -> Trip:
        return await self.trips.reserve(rider_id, vehicle_id)

    async def activate_trip(self, trip_id: UUID) -> Trip:
        return await self.trips.activate(trip_id)

    async def cancel_trip(self, trip_id: UUID) -> Trip:
        return await self.trips.cancel(trip_id)

    async def end_trip(self, trip_id: UUID) -> SettlementResult:
        """Close the trip, then settle it.  Safe to re-issue after a failure."""
        try:
            await self.trips.complete(trip_id)
        except InvalidStateTransition as exc:
            if exc.current is not TripStatus.COMPLETED:
                raise
            logger.info("Trip %s already completed, replaying settlement", trip_id)

        return await self.settle_trip(trip_id)

    async def settle_trip(self, trip_id: UUID) -> SettlementResult:
        """Steps 2-5 of the saga for a trip that is already completed."""
        stage = SettlementStage.TRIP_CLOSED
        try:
            trip = await self.trips.get(trip_id)
            vehicle = await self.vehicles.get_vehicle(trip.vehicle_id)
            tariff = await self.vehicles.get_tariff(vehicle.tariff_id)
            stage = SettlementStage.DATA_FETCHED

            minutes = billable_minutes(trip.elapsed(self._clock()))
            amount = calculate_fare(tariff.price_per_minute, minutes, vehicle.base_price)
            stage = SettlementStage.FARE_COMPUTED
            logger.info(
                "Trip %s fare: %d min x %s + %s = %s",
                trip_id,
                minutes,
                tariff.price_per_minute,
                vehicle.base_price,
                amount,
            )

            payment = await self._request_payment(trip, amount)
        except PaymentAlreadyProcessed:
            raise
        except DispatcherError as exc:
            logger.warning(
                "Settlement of trip %s failed after %s: %s", trip_id, stage.value, exc
            )
            raise SettlementFailed(trip_id, stage, exc) from exc

        logger.info("Trip %s settled with payment %s", trip_id, payment.id)
        return SettlementResult(
            trip_id=trip_id,
            payment_id=payment.id,
            payment_token=payment.qr_token or "",
            amount=payment.amount if payment.amount is not None else amount,
        )

    async def _request_payment(self, trip: Trip, amount: float) -> PaymentInfo:
        try:
            return await self.billing.create_payment(trip.id, trip.rider_id, amount)
        except PaymentAlreadyProcessed:
            existing = await self.billing.find_trip_payment(trip.rider_id, trip.id)
            if existing is None:
                raise
            logger.info("Trip %s was already billed, reusing payment %s", trip.id, existing.id)
            return existing

    # ── Reads ─────────────────────────────────────────────────────

    async def get_trip(self, trip_id: UUID) -> Trip:
        return await self.trips.get(trip_id)

    async def list_rider_trips(self, rider_id: UUID) -> list[Trip]:
        return await self.trips.list_by_rider(rider_id)

    async def active_trip_for_rider(self, rider_id: UUID) -> Optional[Trip]:
        return await self.trips.active_for_rider(rider_id)

    async def list_trips(
        self,
        status: Optional[TripStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Trip]:
        return await self.trips.list_all(status=status, limit=limit, offset=offset)
