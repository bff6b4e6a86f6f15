"""FastAPI dependencies resolving the caller's portal session."""
from __future__ import annotations
import os
from typing import Optional

from fastapi import Cookie, Depends, Response

from portal.db.config import SessionLocal
from portal.services.portal import PortalController
from portal.services.registry import (
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_MAX_SESSIONS,
    PortalRegistry,
)

PORTAL_COOKIE = "portal_session"

_registry: Optional[PortalRegistry] = None


def get_registry() -> PortalRegistry:
    global _registry
    if _registry is None:
        _registry = PortalRegistry.from_session_factory(
            SessionLocal,
            max_sessions=int(
                os.getenv("PORTAL_MAX_SESSIONS", DEFAULT_MAX_SESSIONS)
            ),
            idle_timeout=float(
                os.getenv("PORTAL_SESSION_IDLE_SECONDS", DEFAULT_IDLE_TIMEOUT)
            ),
        )
    return _registry


async def get_portal(
    response: Response,
    portal_session: Optional[str] = Cookie(None),
    registry: PortalRegistry = Depends(get_registry),
) -> PortalController:
    """Return the caller's controller, opening a new session on first contact."""
    controller = registry.get(portal_session)
    if controller is None:
        token, controller = await registry.create()
        response.set_cookie(
            PORTAL_COOKIE, token, httponly=True, samesite="lax"
        )
    return controller
