"""Actor identity supplied by the upstream auth gateway.

Authentication happens in front of this service. The gateway forwards the
authenticated principal in X-Actor-Id / X-Actor-Role; requests without a
role are treated as anonymous guests.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException

from homestay.domain.booking_status import Actor, ActorRole

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    """Resolve the acting principal from gateway headers."""
    if not x_actor_role:
        return Actor(id=x_actor_id, role=ActorRole.GUEST)
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown actor role: {x_actor_role}")
    return Actor(id=x_actor_id, role=role)


def require_staff(actor: Actor = Depends(get_actor)) -> Actor:
    """Dependency for staff-only endpoints."""
    if not actor.is_staff:
        raise HTTPException(status_code=403, detail="Staff role required")
    return actor
