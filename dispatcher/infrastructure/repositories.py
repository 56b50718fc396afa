"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

``SqlRepository`` is the one parameterised data-access class: it receives an
``AsyncSession`` (unit-of-work) and offers ``get_by_id`` / ``add`` / ``find``.
``find`` skips every criterion whose value is ``None``, so optional filters
need no per-field branching.

``SqlTripStore`` is the production ``TripStore``.  Every operation runs in
its own transaction and commits before returning; nothing is held open while
the caller talks to other services.

Concurrency safety
------------------
* ``reserve`` is a single INSERT.  The partial unique indexes on ``trips``
  reject a second open trip for a rider or vehicle, so two concurrent
  reservations can never both commit.
* Transitions are compare-and-set UPDATEs (``WHERE status IN (...)``): of
  two racing transitions on the same trip at most one changes the row.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Generic, Optional, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .database import Base
from .models import TripModel
from dispatcher.domain.entities import Trip, as_utc, utcnow
from dispatcher.domain.enums import (
    OPEN_STATUSES,
    TRANSITION_TIMESTAMPS,
    TripStatus,
    sources_of,
)
from dispatcher.domain.errors import (
    ConflictError,
    InvalidStateTransition,
    RiderHasActiveTrip,
    StorageError,
    TripNotFound,
    VehicleInUse,
)
from dispatcher.domain.interfaces import TripStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class SqlRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, pk) -> Optional[ModelT]:
        return await self.session.get(self.model, pk)

    async def add(self, obj: ModelT) -> ModelT:
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def find(
        self,
        *,
        order_by=None,
        limit: Optional[int] = None,
        offset: int = 0,
        **criteria,
    ) -> list[ModelT]:
        """Select rows matching every criterion that is present."""
        query = select(self.model)
        for name, value in criteria.items():
            if value is None:
                continue
            column = getattr(self.model, name)
            if isinstance(value, (set, frozenset, list, tuple)):
                query = query.where(column.in_(sorted(value)))
            else:
                query = query.where(column == value)
        if order_by is not None:
            query = query.order_by(order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())


class TripRepository(SqlRepository[TripModel]):
    model = TripModel

    async def transition(
        self, trip_id: UUID, target: TripStatus, at: datetime
    ) -> int:
        """Move the trip to *target* only if it is in a legal source status."""
        result = await self.session.execute(
            update(TripModel)
            .where(
                TripModel.id == trip_id,
                TripModel.status.in_(sorted(sources_of(target))),
            )
            .values(status=target, **{TRANSITION_TIMESTAMPS[target]: at})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


def to_entity(model: TripModel) -> Trip:
    return Trip(
        id=model.id,
        rider_id=model.rider_id,
        vehicle_id=model.vehicle_id,
        status=TripStatus(model.status),
        created_at=as_utc(model.created_at),
        started_at=as_utc(model.started_at),
        ended_at=as_utc(model.ended_at),
        cancelled_at=as_utc(model.cancelled_at),
    )


class SqlTripStore(TripStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[TripRepository]:
        """One committed transaction; storage detail is not leaked."""
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield TripRepository(session)
            except SQLAlchemyError as exc:
                logger.exception("Trip storage failure")
                raise StorageError("trip storage failure") from exc

    # ── Commands ──────────────────────────────────────────────────

    async def reserve(self, rider_id: UUID, vehicle_id: UUID) -> Trip:
        model = TripModel(
            id=uuid4(),
            rider_id=rider_id,
            vehicle_id=vehicle_id,
            status=TripStatus.RESERVED,
            created_at=self._clock(),
        )
        async with self._unit_of_work() as repo:
            try:
                await repo.add(model)
            except IntegrityError as exc:
                raise _conflict_from(exc, rider_id, vehicle_id) from exc

        logger.info(
            "Trip %s reserved (rider=%s, vehicle=%s)", model.id, rider_id, vehicle_id
        )
        return to_entity(model)

    async def activate(self, trip_id: UUID) -> Trip:
        return await self._transition(trip_id, TripStatus.ACTIVE)

    async def complete(self, trip_id: UUID) -> Trip:
        return await self._transition(trip_id, TripStatus.COMPLETED)

    async def cancel(self, trip_id: UUID) -> Trip:
        return await self._transition(trip_id, TripStatus.CANCELLED)

    async def _transition(self, trip_id: UUID, target: TripStatus) -> Trip:
        async with self._unit_of_work() as repo:
            changed = await repo.transition(trip_id, target, self._clock())
            model = await repo.get_by_id(trip_id)
            if model is None:
                raise TripNotFound(trip_id)
            if not changed:
                raise InvalidStateTransition(TripStatus(model.status), target)
            trip = to_entity(model)

        logger.info("Trip %s -> %s", trip_id, target.value)
        return trip

    # ── Queries ───────────────────────────────────────────────────

    async def get(self, trip_id: UUID) -> Trip:
        async with self._unit_of_work() as repo:
            model = await repo.get_by_id(trip_id)
            if model is None:
                raise TripNotFound(trip_id)
            return to_entity(model)

    async def list_by_rider(self, rider_id: UUID) -> list[Trip]:
        async with self._unit_of_work() as repo:
            rows = await repo.find(
                rider_id=rider_id, order_by=TripModel.created_at.desc()
            )
            return [to_entity(r) for r in rows]

    async def list_all(
        self,
        status: Optional[TripStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Trip]:
        async with self._unit_of_work() as repo:
            rows = await repo.find(
                status=status,
                order_by=TripModel.created_at.desc(),
                limit=limit,
                offset=offset,
            )
            return [to_entity(r) for r in rows]

    async def active_for_rider(self, rider_id: UUID) -> Optional[Trip]:
        async with self._unit_of_work() as repo:
            rows = await repo.find(
                rider_id=rider_id, status=OPEN_STATUSES, limit=1
            )
            return to_entity(rows[0]) if rows else None


def _conflict_from(
    exc: IntegrityError, rider_id: UUID, vehicle_id: UUID
) -> ConflictError:
    """Tell which partial unique index rejected the reservation."""
    message = str(exc.orig).lower()
    if "rider" in message:
        return RiderHasActiveTrip(rider_id)
    if "vehicle" in message:
        return VehicleInUse(vehicle_id)
    return ConflictError("trip conflicts with an existing trip")
