"""FastAPI dependencies shared by the action center routes."""

from fastapi import Header, HTTPException, Request

from action_center.core.actor import Actor
from action_center.domain.queues import AdminRole
from action_center.services.action_center import ActionCenter


def get_action_center(request: Request) -> ActionCenter:
    """Return the ActionCenter built during application startup."""
    center = getattr(request.app.state, "action_center", None)
    if center is None:
        raise HTTPException(status_code=503, detail="Action center not initialized")
    return center


async def get_actor(
    x_admin_id: str | None = Header(None),
    x_admin_name: str | None = Header(None),
    x_admin_role: str | None = Header(None),
) -> Actor:
    """Resolve the acting admin from request headers.

    Authentication happens upstream; this only requires that the identity
    headers are present and the role is a known one.
    """
    if not x_admin_id or not x_admin_role:
        raise HTTPException(status_code=401, detail="X-Admin-Id and X-Admin-Role headers are required")
    try:
        role = AdminRole(x_admin_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown admin role: {x_admin_role}")
    return Actor(id=x_admin_id, name=x_admin_name or x_admin_id, role=role)
