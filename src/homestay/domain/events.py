"""In-process domain events published after a booking commits.

Subscribers (notification senders, calendar sync) are fire-and-forget:
they run only after the admission transaction committed, their failures
are logged and swallowed, and they are never retried. The durable record
of the same fact is the BOOKING_CREATED outbox row written inside the
transaction.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from homestay.domain.admission import Reservation
    from homestay.domain.booking_status import Actor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingCreated:
    reservation: Reservation
    actor: Actor
    correlation_id: str | None = None


Handler = Callable[[BookingCreated], None]

_handlers: list[Handler] = []
_lock = threading.Lock()


def subscribe(handler: Handler) -> None:
    with _lock:
        if handler not in _handlers:
            _handlers.append(handler)


def unsubscribe(handler: Handler) -> None:
    with _lock:
        if handler in _handlers:
            _handlers.remove(handler)


def clear_subscribers() -> None:
    with _lock:
        _handlers.clear()


def publish(event: BookingCreated) -> None:
    """Deliver the event to every subscriber, isolating their failures."""
    with _lock:
        handlers = list(_handlers)

    for handler in handlers:
        try:
            handler(event)
        except Exception:
            logger.exception(
                "booking event subscriber failed",
                extra={
                    "extra_fields": {
                        "reservation_id": event.reservation.id,
                        "handler": getattr(handler, "__name__", repr(handler)),
                    },
                },
            )
