"""
Ports the trip lifecycle depends on.

One abstract base class per collaborator: the trip store, the vehicle/tariff
service and the billing service.  Production adapters live in
``dispatcher.infrastructure``; tests plug in in-memory fakes.

The ``*Info`` models describe what the lifecycle reads from the remote
services.  Unknown fields are ignored so collaborators can evolve freely.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from .entities import Trip
from .enums import TripStatus


# ── Collaborator snapshots ────────────────────────────────────────────


class VehicleInfo(BaseModel):
    id: UUID
    tariff_id: UUID
    base_price: float

    model_config = {"extra": "ignore"}


class TariffInfo(BaseModel):
    id: UUID
    price_per_minute: float

    model_config = {"extra": "ignore"}


class PaymentInfo(BaseModel):
    id: UUID = Field(validation_alias=AliasChoices("id", "payment_id"))
    trip_id: Optional[UUID] = None
    rider_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("rider_id", "user_id")
    )
    amount: Optional[float] = None
    status: Optional[str] = None
    qr_token: Optional[str] = Field(
        None, validation_alias=AliasChoices("qr_token", "qr_code_url")
    )

    model_config = {"extra": "ignore"}


# ── Ports ─────────────────────────────────────────────────────────────


class TripStore(ABC):
    @abstractmethod
    async def reserve(self, rider_id: UUID, vehicle_id: UUID) -> Trip: ...

    @abstractmethod
    async def activate(self, trip_id: UUID) -> Trip: ...

    @abstractmethod
    async def complete(self, trip_id: UUID) -> Trip: ...

    @abstractmethod
    async def cancel(self, trip_id: UUID) -> Trip: ...

    @abstractmethod
    async def get(self, trip_id: UUID) -> Trip: ...

    @abstractmethod
    async def list_by_rider(self, rider_id: UUID) -> list[Trip]: ...

    @abstractmethod
    async def list_all(
        self,
        status: Optional[TripStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Trip]: ...

    @abstractmethod
    async def active_for_rider(self, rider_id: UUID) -> Optional[Trip]: ...


class VehicleClient(ABC):
    @abstractmethod
    async def get_vehicle(self, vehicle_id: UUID) -> VehicleInfo: ...

    @abstractmethod
    async def get_tariff(self, tariff_id: UUID) -> TariffInfo: ...


class BillingClient(ABC):
    @abstractmethod
    async def create_payment(
        self, trip_id: UUID, rider_id: UUID, amount: float
    ) -> PaymentInfo:
        """Raises ``PaymentAlreadyProcessed`` if the trip was already billed."""

    @abstractmethod
    async def get_payment(self, payment_id: UUID) -> PaymentInfo: ...

    @abstractmethod
    async def find_trip_payment(
        self, rider_id: UUID, trip_id: UUID
    ) -> Optional[PaymentInfo]: ...
