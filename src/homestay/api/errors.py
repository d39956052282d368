"""Mapping of BookingError kinds to HTTP responses."""

from __future__ import annotations

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from homestay.domain.errors import VALIDATION_KINDS, BookingError, ErrorKind

RETRY_AFTER_SECONDS = 1

_CONFLICT_KINDS = frozenset(
    {
        ErrorKind.AVAILABILITY_CONFLICT,
        ErrorKind.SEASONAL_RATE_OVERLAP,
        ErrorKind.INVALID_TRANSITION,
    }
)

_NOT_FOUND_KINDS = frozenset(
    {ErrorKind.PROPERTY_NOT_FOUND, ErrorKind.RESERVATION_NOT_FOUND}
)


def status_for(error: BookingError) -> int:
    if error.kind in VALIDATION_KINDS:
        return 422
    if error.kind in _CONFLICT_KINDS:
        return 409
    if error.kind in _NOT_FOUND_KINDS:
        return 404
    if error.kind is ErrorKind.TRANSACTION_RETRY_EXHAUSTED:
        return 503
    return 400


def error_response(error: BookingError) -> JSONResponse:
    """Render a BookingError as {errorKind, message, bookedDates?, ...}."""
    headers = None
    if error.kind is ErrorKind.TRANSACTION_RETRY_EXHAUSTED:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return JSONResponse(
        status_code=status_for(error),
        content=jsonable_encoder(error.to_dict()),
        headers=headers,
    )
