"""
Admin / observability endpoints
===============================

GET /api/v1/health -- simple health check
"""

from fastapi import APIRouter

from dispatcher.api.schemas import HealthResponse

router = APIRouter(tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
