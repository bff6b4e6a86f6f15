"""Role gate: grants access only when the chosen role matches the profile.

The user first picks the role they want to sign in as, then submits
credentials. After the session gateway accepts them, the stored profile is
fetched and its role compared with the chosen one. Any mismatch, missing
profile or store failure signs the user out again before the outcome is
reported, so the session is never left authenticated after a failed check.

Public operations never raise: each returns a ``GateResult`` carrying the new
state and, when something went wrong, a message for the user.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from portal.errors import PortalError, StoreError
from portal.gateways.session_gateway import SessionEvent, SessionGateway
from portal.models.portal import Identity, Profile, Role
from portal.repositories.catalog_store import CatalogStore
from portal.services.session_context import SessionContext

logger = logging.getLogger(__name__)

ROLE_MISMATCH_MESSAGE = (
    "Invalid credentials. Check with the application administrator."
)
SIGN_IN_FAILED_MESSAGE = "We could not sign you in. Please try again."
SIGN_OUT_FAILED_MESSAGE = "We could not sign you out cleanly. Please sign in again."
SESSION_ENDED_MESSAGE = "Your session has ended. Please sign in again."
CHOOSE_ROLE_MESSAGE = "Choose how you want to sign in first."
ALREADY_SIGNED_IN_MESSAGE = "Sign out before choosing another role."


class GateState(str, Enum):
    UNSELECTED = "unselected"
    ROLE_CHOSEN = "role_chosen"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass
class GateResult:
    state: GateState
    authenticated: bool
    is_admin: bool
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "authenticated": self.authenticated,
            "isAdmin": self.is_admin,
            "message": self.message,
        }


class RoleGate:
    def __init__(
        self,
        gateway: SessionGateway,
        store: CatalogStore,
        context: SessionContext,
        on_reset: Optional[Callable[[], None]] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.context = context
        self.on_reset = on_reset
        self.state = GateState.UNSELECTED
        self.message: Optional[str] = None
        self._signing_out = False
        self._unsubscribe = gateway.on_session_change(self._on_session_change)

    def result(self) -> GateResult:
        return GateResult(
            state=self.state,
            authenticated=self.context.is_authenticated,
            is_admin=self.context.is_admin,
            message=self.message,
        )

    def close(self) -> None:
        self._unsubscribe()

    # Transitions ------------------------------------------------------------
    async def select_role(self, role: Role) -> GateResult:
        if self.state in (GateState.AUTHENTICATING, GateState.AUTHENTICATED):
            self.message = ALREADY_SIGNED_IN_MESSAGE
            return self.result()
        self.context.selected_role = Role(role)
        self.state = GateState.ROLE_CHOSEN
        self.message = None
        pending = self.context.pending_identity
        if pending is not None:
            await self._verify(pending)
        return self.result()

    async def sign_in(self, email: str, password: str) -> GateResult:
        if self.state not in (GateState.ROLE_CHOSEN, GateState.REJECTED):
            self.message = (
                ALREADY_SIGNED_IN_MESSAGE
                if self.state == GateState.AUTHENTICATED
                else CHOOSE_ROLE_MESSAGE
            )
            return self.result()

        self.state = GateState.AUTHENTICATING
        self.message = None
        try:
            identity = await self.gateway.sign_in(email, password)
        except PortalError as exc:
            logger.warning("Sign-in rejected: %s", exc.message)
            self.state = GateState.REJECTED
            self.message = exc.message
            return self.result()
        await self._verify(identity)
        return self.result()

    async def sign_out(self) -> GateResult:
        self.message = None
        await self._sign_out_gateway()
        self._reset()
        return self.result()

    async def resume(self) -> GateResult:
        """Re-check an already existing gateway session."""
        try:
            identity = await self.gateway.current_session()
        except PortalError as exc:
            logger.error("Could not read the current session: %s", exc.message)
            self.message = SIGN_IN_FAILED_MESSAGE
            return self.result()
        if identity is not None:
            await self._adopt(identity)
        return self.result()

    # Internals --------------------------------------------------------------
    async def _adopt(self, identity: Identity) -> None:
        if self.context.selected_role is None:
            # verified as soon as a role is chosen
            self.context.pending_identity = identity
            self.state = GateState.UNSELECTED
            return
        await self._verify(identity)

    async def _verify(self, identity: Identity) -> None:
        self.state = GateState.AUTHENTICATING
        try:
            rows = await self.store.select("profiles", {"id": identity.user_id})
        except StoreError as exc:
            logger.error(
                "Profile fetch for %s failed: %s", identity.user_id, exc.message
            )
            await self._reject(SIGN_IN_FAILED_MESSAGE)
            return
        if not rows:
            logger.error("No profile stored for %s", identity.user_id)
            await self._reject(SIGN_IN_FAILED_MESSAGE)
            return

        try:
            profile = Profile(**rows[0])
        except PydanticValidationError as exc:
            logger.error("Unreadable profile for %s: %s", identity.user_id, exc)
            await self._reject(SIGN_IN_FAILED_MESSAGE)
            return
        if profile.role != self.context.selected_role:
            logger.warning(
                "Role mismatch for %s: chose %s, stored %s",
                identity.user_id,
                self.context.selected_role,
                profile.role.value,
            )
            await self._reject(ROLE_MISMATCH_MESSAGE)
            return

        self.context.grant(profile)
        self.state = GateState.AUTHENTICATED
        logger.info("Signed in %s as %s", profile.id, profile.role.value)

    async def _reject(self, message: str) -> None:
        self._reset()
        await self._sign_out_gateway()
        self.message = message

    async def _sign_out_gateway(self) -> None:
        self._signing_out = True
        try:
            await self.gateway.sign_out()
        except PortalError as exc:
            logger.error("Sign-out failed: %s", exc.message)
            self.message = SIGN_OUT_FAILED_MESSAGE
        finally:
            self._signing_out = False

    def _reset(self) -> None:
        self.context.reset()
        self.state = GateState.UNSELECTED
        if self.on_reset is not None:
            self.on_reset()

    async def _on_session_change(
        self, event: SessionEvent, identity: Optional[Identity]
    ) -> None:
        if event == SessionEvent.SIGNED_OUT:
            if self._signing_out:
                return
            was_authenticated = self.context.is_authenticated
            self._reset()
            if was_authenticated:
                self.message = SESSION_ENDED_MESSAGE
        elif event == SessionEvent.SIGNED_IN and identity is not None:
            if self.state == GateState.AUTHENTICATING:
                return
            await self._adopt(identity)
