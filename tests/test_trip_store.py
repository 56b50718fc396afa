"""
Integration tests for the SQL trip store.

Runs against SQLite with the production ORM model, including the partial
unique indexes that forbid a second open trip per rider / vehicle.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from dispatcher.domain.enums import TripStatus
from dispatcher.domain.errors import (
    InvalidStateTransition,
    RiderHasActiveTrip,
    StorageError,
    TripNotFound,
    VehicleInUse,
)
from dispatcher.infrastructure.database import Base
from dispatcher.infrastructure.models import TripModel
from dispatcher.infrastructure.repositories import SqlTripStore
from tests.fakes import T0, FakeClock


@pytest.mark.asyncio
async def test_reserve_creates_reserved_trip(store: SqlTripStore):
    rider, vehicle = uuid4(), uuid4()
    trip = await store.reserve(rider, vehicle)

    assert trip.status == TripStatus.RESERVED
    assert trip.rider_id == rider
    assert trip.vehicle_id == vehicle
    assert trip.created_at == T0
    assert trip.started_at is None

    stored = await store.get(trip.id)
    assert stored == trip


@pytest.mark.asyncio
async def test_get_unknown_trip_raises(store: SqlTripStore):
    with pytest.raises(TripNotFound):
        await store.get(uuid4())


@pytest.mark.asyncio
async def test_happy_path_stamps_timestamps(store: SqlTripStore, clock: FakeClock):
    trip = await store.reserve(uuid4(), uuid4())

    clock.advance(minutes=1)
    active = await store.activate(trip.id)
    assert active.status == TripStatus.ACTIVE
    assert active.started_at == clock.now

    clock.advance(minutes=7, seconds=30)
    completed = await store.complete(trip.id)
    assert completed.status == TripStatus.COMPLETED
    assert completed.ended_at == clock.now
    assert completed.ended_at - completed.started_at == (clock.now - active.started_at)
    assert completed.cancelled_at is None


# ── Active-trip uniqueness ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_second_open_trip_for_rider_conflicts(store: SqlTripStore):
    rider = uuid4()
    await store.reserve(rider, uuid4())
    with pytest.raises(RiderHasActiveTrip):
        await store.reserve(rider, uuid4())


@pytest.mark.asyncio
async def test_vehicle_in_use_conflicts(store: SqlTripStore):
    vehicle = uuid4()
    trip = await store.reserve(uuid4(), vehicle)
    await store.activate(trip.id)
    with pytest.raises(VehicleInUse):
        await store.reserve(uuid4(), vehicle)


@pytest.mark.asyncio
async def test_rider_can_reserve_again_after_completion(store: SqlTripStore):
    rider = uuid4()
    trip = await store.reserve(rider, uuid4())
    await store.activate(trip.id)
    await store.complete(trip.id)

    again = await store.reserve(rider, uuid4())
    assert again.status == TripStatus.RESERVED


@pytest.mark.asyncio
async def test_vehicle_free_again_after_cancellation(store: SqlTripStore):
    vehicle = uuid4()
    trip = await store.reserve(uuid4(), vehicle)
    await store.cancel(trip.id)

    again = await store.reserve(uuid4(), vehicle)
    assert again.vehicle_id == vehicle


# ── Invalid transitions ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_activate_twice_fails_and_keeps_started_at(
    store: SqlTripStore, clock: FakeClock
):
    trip = await store.reserve(uuid4(), uuid4())
    active = await store.activate(trip.id)

    clock.advance(minutes=5)
    with pytest.raises(InvalidStateTransition) as exc_info:
        await store.activate(trip.id)

    assert exc_info.value.current == TripStatus.ACTIVE
    assert (await store.get(trip.id)).started_at == active.started_at


@pytest.mark.asyncio
async def test_complete_from_reserved_fails(store: SqlTripStore):
    trip = await store.reserve(uuid4(), uuid4())
    with pytest.raises(InvalidStateTransition):
        await store.complete(trip.id)

    unchanged = await store.get(trip.id)
    assert unchanged.status == TripStatus.RESERVED
    assert unchanged.ended_at is None


@pytest.mark.asyncio
async def test_cancel_after_completed_fails(store: SqlTripStore):
    trip = await store.reserve(uuid4(), uuid4())
    await store.activate(trip.id)
    await store.complete(trip.id)

    with pytest.raises(InvalidStateTransition) as exc_info:
        await store.cancel(trip.id)

    assert exc_info.value.current == TripStatus.COMPLETED
    assert exc_info.value.target == TripStatus.CANCELLED
    assert (await store.get(trip.id)).cancelled_at is None


@pytest.mark.asyncio
async def test_transition_of_unknown_trip_raises_not_found(store: SqlTripStore):
    with pytest.raises(TripNotFound):
        await store.activate(uuid4())


# ── Queries ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_by_rider_newest_first(store: SqlTripStore, clock: FakeClock):
    rider = uuid4()
    first = await store.reserve(rider, uuid4())
    await store.cancel(first.id)
    clock.advance(minutes=3)
    second = await store.reserve(rider, uuid4())
    await store.reserve(uuid4(), uuid4())  # someone else

    trips = await store.list_by_rider(rider)
    assert [t.id for t in trips] == [second.id, first.id]


@pytest.mark.asyncio
async def test_list_all_filters_and_paginates(store: SqlTripStore, clock: FakeClock):
    ids = []
    for _ in range(3):
        trip = await store.reserve(uuid4(), uuid4())
        ids.append(trip.id)
        clock.advance(seconds=1)
    await store.cancel(ids[0])

    everything = await store.list_all()
    assert [t.id for t in everything] == list(reversed(ids))

    cancelled = await store.list_all(status=TripStatus.CANCELLED)
    assert [t.id for t in cancelled] == [ids[0]]

    page = await store.list_all(limit=1, offset=1)
    assert [t.id for t in page] == [ids[1]]


@pytest.mark.asyncio
async def test_active_for_rider(store: SqlTripStore):
    rider = uuid4()
    assert await store.active_for_rider(rider) is None

    trip = await store.reserve(rider, uuid4())
    found = await store.active_for_rider(rider)
    assert found is not None and found.id == trip.id

    await store.cancel(trip.id)
    assert await store.active_for_rider(rider) is None


# ── Storage failures ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_database_error_becomes_opaque_storage_error(
    store: SqlTripStore, engine: AsyncEngine
):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    with pytest.raises(StorageError) as exc_info:
        await store.get(uuid4())

    assert str(exc_info.value) == "trip storage failure"
    assert isinstance(exc_info.value.__cause__, SQLAlchemyError)


@pytest.mark.asyncio
async def test_integrity_error_outside_reserve_is_storage_error(store: SqlTripStore):
    trip = await store.reserve(uuid4(), uuid4())
    duplicate = TripModel(
        id=trip.id,
        rider_id=uuid4(),
        vehicle_id=uuid4(),
        status=TripStatus.CANCELLED,
        created_at=T0,
    )

    with pytest.raises(StorageError) as exc_info:
        async with store._unit_of_work() as repo:
            await repo.add(duplicate)

    assert isinstance(exc_info.value.__cause__, IntegrityError)
    assert (await store.get(trip.id)).status == TripStatus.RESERVED
