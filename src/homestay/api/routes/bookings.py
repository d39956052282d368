"""Booking endpoints: admission, read, and staff status transitions."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from homestay.api.actor import get_actor, require_staff
from homestay.api.errors import error_response
from homestay.domain.admission import (
    BookingRequest,
    GuestDetail,
    create_booking,
    get_booking,
)
from homestay.domain.booking_status import Actor, ReservationStatus, transition_status
from homestay.domain.errors import BookingError
from homestay.observability.logging import get_logger
from homestay.observability.redaction import safe_log_context

router = APIRouter(tags=["bookings"])

logger = get_logger(__name__)


class GuestDetailBody(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    gender: str | None = None
    age_category: str = Field(default="adult", pattern="^(adult|child|infant)$")
    relationship_to_primary: str | None = None
    notes: str | None = None


class CreateBookingBody(BaseModel):
    # Dates stay strings so malformed input is reported as INVALID_RANGE
    check_in: str
    check_out: str
    guest_count: int
    guest_name: str = Field(min_length=1, max_length=255)
    guest_email: EmailStr
    guest_phone: str = Field(min_length=1, max_length=32)
    special_requests: str | None = Field(default=None, max_length=2000)
    guests: list[GuestDetailBody] = Field(default_factory=list)

    def to_request(self) -> BookingRequest:
        return BookingRequest(
            check_in=self.check_in,
            check_out=self.check_out,
            guest_count=self.guest_count,
            guest_name=self.guest_name,
            guest_email=str(self.guest_email),
            guest_phone=self.guest_phone,
            special_requests=self.special_requests,
            guests=tuple(
                GuestDetail(
                    **g.model_dump(exclude={"email"}),
                    email=str(g.email) if g.email else None,
                )
                for g in self.guests
            ),
        )


class TransitionBody(BaseModel):
    to_status: ReservationStatus
    notes: str | None = Field(default=None, max_length=2000)


@router.post("/properties/{property_id}/bookings", status_code=201, response_model=None)
def post_booking(
    property_id: str,
    body: CreateBookingBody,
    actor: Actor = Depends(get_actor),
) -> dict | JSONResponse:
    """Admit a booking. 409 with bookedDates when the dates were taken."""
    logger.info(
        "booking request received",
        extra={
            "extra_fields": {
                "property_id": property_id,
                **safe_log_context(guest_name=body.guest_name, guest_email=body.guest_email),
            },
        },
    )
    result = create_booking(property_id, body.to_request(), actor)
    if isinstance(result, BookingError):
        return error_response(result)
    return result.to_dict()


@router.get("/bookings/{reservation_id}", response_model=None)
def read_booking(reservation_id: str) -> dict | JSONResponse:
    result = get_booking(reservation_id)
    if isinstance(result, BookingError):
        return error_response(result)
    return result


@router.post("/bookings/{reservation_id}/transitions", response_model=None)
def post_transition(
    reservation_id: str,
    body: TransitionBody,
    actor: Actor = Depends(require_staff),
) -> dict | JSONResponse:
    result = transition_status(reservation_id, body.to_status.value, actor, body.notes)
    if isinstance(result, BookingError):
        return error_response(result)
    return result
