"""Session router: role selection, sign-in and sign-out.

Outcomes of the role gate are always returned with 200 and a ``message``
when the attempt was rejected; the session state in the body tells the
client which screen to show next.
"""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response
from pydantic import BaseModel, Field

from portal.dependencies import PORTAL_COOKIE, get_portal, get_registry
from portal.models.portal import Role
from portal.services.portal import PortalController
from portal.services.registry import PortalRegistry
from portal.services.role_gate import GateState

router = APIRouter(prefix="/session", tags=["Session"])


class RoleChoice(BaseModel):
    role: Role


class Credentials(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)


class SessionOut(BaseModel):
    state: str
    authenticated: bool
    isAdmin: bool
    selectedRole: Optional[str] = None
    currentUser: Optional[str] = None
    email: Optional[str] = None
    selectedCourse: Optional[str] = None
    showCompletion: bool = False
    message: Optional[str] = None


@router.get("", response_model=SessionOut)
async def get_session_state(portal: PortalController = Depends(get_portal)):
    return portal.state()


@router.post("/role", response_model=SessionOut)
async def choose_role(
    payload: RoleChoice, portal: PortalController = Depends(get_portal)
):
    await portal.select_role(payload.role)
    return portal.state()


@router.post("/login", response_model=SessionOut)
async def login(
    payload: Credentials, portal: PortalController = Depends(get_portal)
):
    await portal.sign_in(payload.email, payload.password)
    return portal.state()


@router.post("/logout", response_model=SessionOut)
async def logout(
    response: Response,
    portal_session: Optional[str] = Cookie(None),
    registry: PortalRegistry = Depends(get_registry),
):
    """Sign out, then forget the session and clear its cookie."""
    portal = registry.get(portal_session)
    if portal is None:
        state = SessionOut(
            state=GateState.UNSELECTED.value, authenticated=False, isAdmin=False
        )
    else:
        await portal.sign_out()
        state = portal.state()
        registry.discard(portal_session)
    response.delete_cookie(PORTAL_COOKIE)
    return state
