"""FastAPI dependency injection helpers."""

from fastapi import Request

from dispatcher.services.trip_lifecycle import TripLifecycle


async def get_lifecycle(request: Request) -> TripLifecycle:
    """Return the orchestrator built by the app lifespan."""
    return request.app.state.lifecycle
