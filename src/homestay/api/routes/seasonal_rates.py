"""Seasonal rate management for a property (staff only for writes)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from homestay.api.actor import require_staff
from homestay.api.errors import error_response
from homestay.domain import seasonal_rates
from homestay.domain.booking_status import Actor
from homestay.domain.errors import BookingError
from homestay.domain.seasonal_rates import RateType
from homestay.observability.logging import get_logger

router = APIRouter(prefix="/properties/{property_id}/seasonal-rates", tags=["seasonal-rates"])

logger = get_logger(__name__)


class SeasonalRateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    rate_type: RateType
    rate_value: Decimal = Field(ge=0)
    priority: int = 0
    min_stay_nights: int | None = Field(default=None, ge=1)
    applies_to_weekends_only: bool = False
    is_active: bool = True
    description: str | None = None

    @model_validator(mode="after")
    def _check_range(self) -> SeasonalRateRequest:
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    def to_data(self) -> dict:
        data = self.model_dump()
        data["rate_type"] = self.rate_type.value
        return data


@router.get("")
def list_rates(property_id: str) -> dict:
    rates = seasonal_rates.list_seasonal_rates(property_id)
    return {"property_id": property_id, "seasonal_rates": [r.to_dict() for r in rates]}


@router.post("", status_code=201, response_model=None)
def create_rate(
    property_id: str,
    body: SeasonalRateRequest,
    actor: Actor = Depends(require_staff),
) -> dict | JSONResponse:
    """Create a seasonal rate; rejected if it overlaps an active one."""
    result = seasonal_rates.create_seasonal_rate(property_id, body.to_data())
    if isinstance(result, BookingError):
        return error_response(result)

    logger.info(
        "seasonal rate created via api",
        extra={
            "extra_fields": {
                "property_id": property_id,
                "seasonal_rate_id": result.id,
                "actor_id": actor.id,
            },
        },
    )
    return result.to_dict()


@router.put("/{rate_id}", response_model=None)
def update_rate(
    property_id: str,
    rate_id: str,
    body: SeasonalRateRequest,
    actor: Actor = Depends(require_staff),
) -> dict | JSONResponse:
    result = seasonal_rates.update_seasonal_rate(property_id, rate_id, body.to_data())
    if result is None:
        raise HTTPException(status_code=404, detail="Seasonal rate not found")
    if isinstance(result, BookingError):
        return error_response(result)
    return result.to_dict()


@router.delete("/{rate_id}", status_code=204)
def deactivate_rate(
    property_id: str,
    rate_id: str,
    actor: Actor = Depends(require_staff),
) -> None:
    """Soft-delete: the rate stops applying but stays for history."""
    if not seasonal_rates.deactivate_seasonal_rate(property_id, rate_id):
        raise HTTPException(status_code=404, detail="Seasonal rate not found")
