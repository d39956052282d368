"""Rate endpoints: advisory quote and per-night rate calendar."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from homestay.api.errors import error_response
from homestay.domain.errors import BookingError
from homestay.domain.quote import quote_rate
from homestay.domain.seasonal_rates import rate_calendar

router = APIRouter(prefix="/properties/{property_id}/rates", tags=["rates"])


@router.get("/quote", response_model=None)
def get_quote(
    property_id: str,
    check_in: str = Query(...),
    check_out: str = Query(...),
    guest_count: int = Query(default=1),
) -> dict | JSONResponse:
    """Price a stay. Informational only; booking re-prices under lock."""
    result = quote_rate(property_id, check_in, check_out, guest_count)
    if isinstance(result, BookingError):
        return error_response(result)
    return {"property_id": property_id, **result.to_dict()}


@router.get("/calendar", response_model=None)
def get_rate_calendar(
    property_id: str,
    start: date,
    end: date,
) -> dict | JSONResponse:
    """Base and seasonal nightly rates for [start, end)."""
    result = rate_calendar(property_id, start, end)
    if isinstance(result, BookingError):
        return error_response(result)
    return {"property_id": property_id, "days": result}
