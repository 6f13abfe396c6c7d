"""
Exception handlers
==================

Booking rejections become ``{"error": kind, "detail": message}`` with the
status code the error class declares (400 / 404 / 409).  Storage faults
become a generic 500; the cause is logged, never returned.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from rentals.api.schemas import AvailabilityWindow, ErrorResponse
from rentals.domain.entities import InvalidStateTransition
from rentals.domain.errors import BookingError, DateRangeConflict, StorageUnavailable

logger = logging.getLogger(__name__)


def _conflict_windows(exc: BookingError) -> list[AvailabilityWindow]:
    if not isinstance(exc, DateRangeConflict):
        return []
    return [
        AvailabilityWindow(
            start_date=w.range.first_day,
            end_date=w.range.last_day,
            status=w.status,
        )
        for w in exc.conflicts
    ]


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.kind)
    body = ErrorResponse(
        error=exc.kind, detail=exc.message, conflicts=_conflict_windows(exc)
    )
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


async def storage_error_handler(request: Request, exc: StorageUnavailable) -> JSONResponse:
    logger.error("%s %s failed: storage unavailable", request.method, request.url.path)
    body = ErrorResponse(error=exc.kind, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


async def transition_error_handler(
    request: Request, exc: InvalidStateTransition
) -> JSONResponse:
    body = ErrorResponse(error="InvalidStateTransition", detail=str(exc))
    return JSONResponse(status_code=409, content=jsonable_encoder(body))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(StorageUnavailable, storage_error_handler)
    app.add_exception_handler(InvalidStateTransition, transition_error_handler)
