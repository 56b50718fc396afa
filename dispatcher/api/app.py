"""
FastAPI application factory.

* Registers routes for trips, rider-scoped trips and admin.
* Builds the database engine, the collaborator HTTP clients and the trip
  lifecycle once at startup (lifespan) and disposes them on shutdown.
* Maps domain errors to HTTP responses and applies rate limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

import httpx
from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from dispatcher.api.errors import register_exception_handlers
from dispatcher.api.middleware import limiter
from dispatcher.api.routes import admin, trips, users
from dispatcher.config import Settings, settings as default_settings
from dispatcher.infrastructure.database import create_engine, create_session_factory
from dispatcher.infrastructure.http_clients import HttpBillingClient, HttpVehicleClient
from dispatcher.infrastructure.repositories import SqlTripStore
from dispatcher.services.trip_lifecycle import TripLifecycle

logger = logging.getLogger(__name__)


def build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Wire shared resources on startup; release them on shutdown."""
        engine = create_engine(settings)
        timeout = httpx.Timeout(settings.request_timeout_seconds)
        vehicle_http = httpx.AsyncClient(
            base_url=settings.vehicle_service_url, timeout=timeout
        )
        billing_http = httpx.AsyncClient(
            base_url=settings.billing_service_url, timeout=timeout
        )

        app.state.lifecycle = TripLifecycle(
            trips=SqlTripStore(create_session_factory(engine)),
            vehicles=HttpVehicleClient(vehicle_http),
            billing=HttpBillingClient(billing_http),
        )
        logger.info(
            "Dispatcher started (vehicles=%s, billing=%s, timeout=%ss)",
            settings.vehicle_service_url,
            settings.billing_service_url,
            settings.request_timeout_seconds,
        )
        try:
            yield
        finally:
            await vehicle_http.aclose()
            await billing_http.aclose()
            await engine.dispose()
            logger.info("Dispatcher stopped")

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="Vehicle Rental Dispatcher API",
        description=(
            "Reserves vehicles, drives each trip through its lifecycle and "
            "settles finished trips against the vehicle/tariff and billing "
            "services."
        ),
        version="1.0.0",
        lifespan=build_lifespan(settings),
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
