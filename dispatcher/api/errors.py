"""
Domain error -> HTTP response mapping.

The only place that knows which status code a ``DispatcherError`` becomes.
Bodies share one shape (``ErrorResponse``) so a client can tell "retry is
safe" (``retryable: true``) from "do not retry".
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dispatcher.domain.errors import (
    ConflictError,
    DispatcherError,
    InvalidStateTransition,
    NotFoundError,
    PaymentAlreadyProcessed,
    ServiceError,
    ServiceUnavailable,
    SettlementFailed,
    StorageError,
)

logger = logging.getLogger(__name__)

# Checked in order; first isinstance match wins
ERROR_STATUS: list[tuple[type[DispatcherError], int, str]] = [
    (NotFoundError, 404, "not_found"),
    (ConflictError, 409, "conflict"),
    (InvalidStateTransition, 400, "invalid_transition"),
    (PaymentAlreadyProcessed, 409, "payment_already_processed"),
    (SettlementFailed, 502, "settlement_failed"),
    (ServiceUnavailable, 503, "service_unavailable"),
    (ServiceError, 502, "service_error"),
    (StorageError, 500, "internal_error"),
]


def error_status(exc: DispatcherError) -> tuple[int, str]:
    for cls, status_code, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return status_code, code
    return 500, "internal_error"


async def dispatcher_error_handler(
    request: Request, exc: DispatcherError
) -> JSONResponse:
    status_code, code = error_status(exc)
    detail = "Internal server error" if code == "internal_error" else str(exc)
    body = {"detail": detail, "error": code, "retryable": exc.retryable}

    if isinstance(exc, SettlementFailed):
        body.update(
            trip_id=str(exc.trip_id),
            stage=exc.stage.value,
            cause=error_status(exc.cause)[1] if exc.cause else None,
        )

    if status_code >= 500:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    else:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DispatcherError, dispatcher_error_handler)
