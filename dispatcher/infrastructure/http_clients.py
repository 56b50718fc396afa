"""
HTTP adapters for the vehicle/tariff and billing services.

Each adapter wraps an ``httpx.AsyncClient`` created once at start-up (with
the service base URL and the request timeout already set) and translates
remote outcomes into domain errors:

=========================  ==========================================
remote outcome             raised
=========================  ==========================================
404                        ``NotFoundError(resource)``
409 on ``POST /payments``  ``PaymentAlreadyProcessed(trip_id)``
other non-2xx              ``ServiceError(service, detail)``
timeout / transport error  ``ServiceUnavailable(service)``
undecodable body           ``ServiceError(service, "malformed response")``
too many redirects         ``ServiceError(service, "too many redirects")``
2xx, unparseable body      ``ServiceError(service, "malformed response")``
=========================  ==========================================
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, TypeAdapter

from dispatcher.domain.errors import (
    NotFoundError,
    PaymentAlreadyProcessed,
    ServiceError,
    ServiceUnavailable,
)
from dispatcher.domain.interfaces import (
    BillingClient,
    PaymentInfo,
    TariffInfo,
    VehicleClient,
    VehicleInfo,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_payment_list = TypeAdapter(list[PaymentInfo])


class ServiceClient:
    """Shared request / error-mapping plumbing for one remote service."""

    service: str = "service"

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        resource: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        logger.debug("Calling %s service: %s %s", self.service, method, path)
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("%s service timed out: %s %s", self.service, method, path)
            raise ServiceUnavailable(self.service) from exc
        except httpx.DecodingError as exc:
            logger.warning("%s service sent an undecodable body: %s", self.service, exc)
            raise ServiceError(self.service, "malformed response") from exc
        except httpx.TooManyRedirects as exc:
            raise ServiceError(self.service, "too many redirects") from exc
        except httpx.RequestError as exc:
            logger.warning("%s service unreachable: %s", self.service, exc)
            raise ServiceUnavailable(self.service) from exc

        if resource is not None and response.status_code == 404:
            raise NotFoundError(resource)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        detail = f"{response.status_code}: {response.text}"
        logger.warning("%s service error: %s", self.service, detail)
        raise ServiceError(self.service, detail)

    def _parse(self, response: httpx.Response, model: type[ModelT]) -> ModelT:
        self._raise_for_status(response)
        try:
            return model.model_validate(response.json())
        except ValueError as exc:
            raise ServiceError(self.service, "malformed response") from exc


class HttpVehicleClient(ServiceClient, VehicleClient):
    service = "vehicles"

    async def get_vehicle(self, vehicle_id: UUID) -> VehicleInfo:
        response = await self._request(
            "GET", f"/vehicles/{vehicle_id}", resource=f"vehicle {vehicle_id}"
        )
        return self._parse(response, VehicleInfo)

    async def get_tariff(self, tariff_id: UUID) -> TariffInfo:
        response = await self._request(
            "GET", f"/tariffs/{tariff_id}", resource=f"tariff {tariff_id}"
        )
        return self._parse(response, TariffInfo)


class HttpBillingClient(ServiceClient, BillingClient):
    service = "billing"

    async def create_payment(
        self, trip_id: UUID, rider_id: UUID, amount: float
    ) -> PaymentInfo:
        response = await self._request(
            "POST",
            "/payments",
            json={
                "trip_id": str(trip_id),
                "rider_id": str(rider_id),
                "amount": amount,
            },
        )
        if response.status_code == 409:
            raise PaymentAlreadyProcessed(trip_id)

        payment = self._parse(response, PaymentInfo)
        if payment.qr_token is None:
            # Creation only echoed the id; the token lives on the payment
            payment = await self.get_payment(payment.id)
        return payment

    async def get_payment(self, payment_id: UUID) -> PaymentInfo:
        response = await self._request(
            "GET", f"/payments/{payment_id}", resource=f"payment {payment_id}"
        )
        return self._parse(response, PaymentInfo)

    async def find_trip_payment(
        self, rider_id: UUID, trip_id: UUID
    ) -> Optional[PaymentInfo]:
        response = await self._request("GET", f"/users/{rider_id}/payments")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        try:
            payments = _payment_list.validate_python(response.json())
        except ValueError as exc:
            raise ServiceError(self.service, "malformed response") from exc
        return next((p for p in payments if p.trip_id == trip_id), None)
