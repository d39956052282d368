"""Availability endpoints (advisory, lock-free reads)."""

from __future__ import annotations

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from homestay.api.errors import error_response
from homestay.domain import availability
from homestay.domain.errors import BookingError
from homestay.infra.settings import get_settings
from homestay.infra.time import local_today

router = APIRouter(prefix="/properties/{property_id}/availability", tags=["availability"])


@router.get("", response_model=None)
def check_availability(
    property_id: str,
    check_in: str = Query(...),
    check_out: str = Query(...),
) -> dict | JSONResponse:
    """Whether [check_in, check_out) is free, plus booked dates for redraw."""
    result = availability.check_availability(property_id, check_in, check_out)
    if isinstance(result, BookingError):
        return error_response(result)
    return result


@router.get("/next")
def next_available(
    property_id: str,
    nights: int = Query(..., ge=1, le=365),
    horizon_days: int | None = Query(default=None, ge=0, le=365),
) -> dict:
    """First free window of `nights` nights starting within the horizon."""
    if horizon_days is None:
        horizon_days = get_settings().next_available_horizon_days

    window = availability.find_next_available(
        property_id, nights, horizon_days, local_today()
    )
    return {
        "property_id": property_id,
        "nights": nights,
        "horizon_days": horizon_days,
        "window": window.to_dict() if window is not None else None,
    }


@router.get("/calendar", response_model=None)
def availability_calendar(
    property_id: str,
    start_month: str = Query(..., description="YYYY-MM"),
    months: int = Query(default=3),
) -> dict | JSONResponse:
    result = availability.availability_calendar(
        property_id, start_month, months, local_today()
    )
    if isinstance(result, BookingError):
        return error_response(result)
    return result
