"""
Role gate tests: role choice, credential checks and role verification
"""

import pytest

from portal.errors import AuthError, StoreError
from portal.gateways.session_gateway import (
    PasswordSessionGateway,
    SessionEvent,
    SessionGateway,
)
from portal.models.portal import Identity, Role
from portal.repositories.catalog_store import CatalogStore
from portal.services.role_gate import (
    CHOOSE_ROLE_MESSAGE,
    ROLE_MISMATCH_MESSAGE,
    SESSION_ENDED_MESSAGE,
    SIGN_IN_FAILED_MESSAGE,
    SIGN_OUT_FAILED_MESSAGE,
    GateState,
    RoleGate,
)
from portal.services.session_context import SessionContext

from tests.conftest import ADMIN_EMAIL, PASSWORD, STUDENT_EMAIL


class UnavailableGateway(SessionGateway):
    async def authenticate(self, email, password):
        raise AuthError("Sign-in is unavailable right now.")


class FixedIdentityGateway(SessionGateway):
    """Accepts any credentials as the given identity"""

    def __init__(self, identity: Identity):
        super().__init__()
        self.identity = identity

    async def authenticate(self, email, password):
        return self.identity


class BrokenSignOutGateway(PasswordSessionGateway):
    async def sign_out(self):
        raise AuthError("Sign-out is unavailable right now.")


class UnreachableStore(CatalogStore):
    async def select(self, table, filters=None, order_by=None):
        raise StoreError()


@pytest.fixture
def gateway(session_factory):
    return PasswordSessionGateway(session_factory)


@pytest.fixture
def context():
    return SessionContext()


@pytest.fixture
def gate(gateway, store, context, accounts):
    return RoleGate(gateway, store, context)


class TestRoleChoice:
    async def test_select_role(self, gate, context):
        result = await gate.select_role(Role.STUDENT)
        assert result.state == GateState.ROLE_CHOSEN
        assert context.selected_role == Role.STUDENT
        assert not result.authenticated

    async def test_sign_in_requires_role(self, gate, gateway):
        result = await gate.sign_in(STUDENT_EMAIL, PASSWORD)
        assert result.state == GateState.UNSELECTED
        assert result.message == CHOOSE_ROLE_MESSAGE
        assert await gateway.current_session() is None


class TestSignIn:
    async def test_student_matching_role(self, gate, context, accounts):
        await gate.select_role(Role.STUDENT)
        result = await gate.sign_in(STUDENT_EMAIL, PASSWORD)
        assert result.state == GateState.AUTHENTICATED
        assert result.authenticated is True
        assert result.is_admin is False
        assert context.current_user == accounts["student"]
        assert context.profile.email == STUDENT_EMAIL

    async def test_admin_matching_role(self, gate):
        await gate.select_role(Role.ADMIN)
        result = await gate.sign_in(ADMIN_EMAIL, PASSWORD)
        assert result.state == GateState.AUTHENTICATED
        assert result.is_admin is True

    async def test_email_is_case_insensitive(self, gate):
        await gate.select_role(Role.ADMIN)
        result = await gate.sign_in("  Admin@Example.com ", PASSWORD)
        assert result.authenticated

    async def test_role_mismatch_signs_out(self, gate, gateway, context):
        await gate.select_role(Role.ADMIN)
        result = await gate.sign_in(STUDENT_EMAIL, PASSWORD)
        assert result.state == GateState.UNSELECTED
        assert result.authenticated is False
        assert result.is_admin is False
        assert result.message == ROLE_MISMATCH_MESSAGE
        assert context.selected_role is None
        assert context.profile is None
        assert await gateway.current_session() is None

    async def test_mismatch_never_exposes_authenticated_flags(
        self, gate, gateway, context
    ):
        seen = []

        async def watch(event, identity):
            seen.append((event, context.is_authenticated, context.is_admin))

        gateway.on_session_change(watch)
        await gate.select_role(Role.STUDENT)
        await gate.sign_in(ADMIN_EMAIL, PASSWORD)

        assert [e for e, _, _ in seen] == [
            SessionEvent.SIGNED_IN,
            SessionEvent.SIGNED_OUT,
        ]
        assert all(not auth and not admin for _, auth, admin in seen)

    async def test_wrong_password_keeps_role_for_retry(self, gate, context):
        await gate.select_role(Role.STUDENT)
        result = await gate.sign_in(STUDENT_EMAIL, "wrong")
        assert result.state == GateState.REJECTED
        assert result.message == "Invalid credentials."
        assert not result.authenticated
        assert context.selected_role == Role.STUDENT

        retry = await gate.sign_in(STUDENT_EMAIL, PASSWORD)
        assert retry.state == GateState.AUTHENTICATED
        assert retry.message is None

    async def test_unknown_account(self, gate):
        await gate.select_role(Role.STUDENT)
        result = await gate.sign_in("nobody@example.com", PASSWORD)
        assert result.state == GateState.REJECTED
        assert not result.authenticated

    async def test_gateway_unavailable(self, store, context, accounts):
        gate = RoleGate(UnavailableGateway(), store, context)
        await gate.select_role(Role.STUDENT)
        result = await gate.sign_in(STUDENT_EMAIL, PASSWORD)
        assert result.state == GateState.REJECTED
        assert result.message == "Sign-in is unavailable right now."
        assert not result.authenticated

    async def test_profile_fetch_failure(self, session_factory, context, accounts):
        gateway = PasswordSessionGateway(session_factory)
        gate = RoleGate(gateway, UnreachableStore(session_factory), context)
        await gate.select_role(Role.STUDENT)
        result = await gate.sign_in(STUDENT_EMAIL, PASSWORD)
        assert result.state == GateState.UNSELECTED
        assert result.message == SIGN_IN_FAILED_MESSAGE
        assert not result.authenticated
        assert await gateway.current_session() is None

    async def test_missing_profile(self, store, context):
        gateway = FixedIdentityGateway(
            Identity(user_id="ghost", email="ghost@example.com")
        )
        gate = RoleGate(gateway, store, context)
        await gate.select_role(Role.STUDENT)
        result = await gate.sign_in("ghost@example.com", "anything")
        assert result.state == GateState.UNSELECTED
        assert result.message == SIGN_IN_FAILED_MESSAGE
        assert await gateway.current_session() is None


class TestSignOut:
    async def test_sign_out_resets_everything(self, gate, gateway, context):
        await gate.select_role(Role.ADMIN)
        await gate.sign_in(ADMIN_EMAIL, PASSWORD)
        context.selected_course = "course-1"
        context.show_completion = True

        result = await gate.sign_out()
        assert result.state == GateState.UNSELECTED
        assert context == SessionContext()
        assert await gateway.current_session() is None

    async def test_sign_out_failure_still_resets(
        self, session_factory, store, context, accounts
    ):
        gate = RoleGate(BrokenSignOutGateway(session_factory), store, context)
        await gate.select_role(Role.STUDENT)
        await gate.sign_in(STUDENT_EMAIL, PASSWORD)

        result = await gate.sign_out()
        assert result.state == GateState.UNSELECTED
        assert not result.authenticated
        assert result.message == SIGN_OUT_FAILED_MESSAGE
        assert context.profile is None

    async def test_external_sign_out_event(self, gate, gateway, context):
        reset_calls = []
        gate.on_reset = lambda: reset_calls.append(True)
        await gate.select_role(Role.STUDENT)
        await gate.sign_in(STUDENT_EMAIL, PASSWORD)

        # e.g. the session expired at the gateway
        await gateway.sign_out()
        assert gate.state == GateState.UNSELECTED
        assert gate.message == SESSION_ENDED_MESSAGE
        assert not context.is_authenticated
        assert reset_calls


class TestResume:
    async def _signed_in_gateway(self, session_factory, email):
        gateway = PasswordSessionGateway(session_factory)
        await gateway.sign_in(email, PASSWORD)
        return gateway

    async def test_resume_without_role_waits_for_choice(
        self, session_factory, store, context, accounts
    ):
        gateway = await self._signed_in_gateway(session_factory, STUDENT_EMAIL)
        gate = RoleGate(gateway, store, context)

        result = await gate.resume()
        assert result.state == GateState.UNSELECTED
        assert not result.authenticated
        assert context.pending_identity.user_id == accounts["student"]

        result = await gate.select_role(Role.STUDENT)
        assert result.state == GateState.AUTHENTICATED
        assert context.pending_identity is None

    async def test_resume_then_wrong_role_signs_out(
        self, session_factory, store, context, accounts
    ):
        gateway = await self._signed_in_gateway(session_factory, STUDENT_EMAIL)
        gate = RoleGate(gateway, store, context)
        await gate.resume()

        result = await gate.select_role(Role.ADMIN)
        assert result.state == GateState.UNSELECTED
        assert result.message == ROLE_MISMATCH_MESSAGE
        assert not result.is_admin
        assert await gateway.current_session() is None

    async def test_resume_with_chosen_role_verifies_immediately(
        self, session_factory, store, context, accounts
    ):
        gateway = await self._signed_in_gateway(session_factory, STUDENT_EMAIL)
        context.selected_role = Role.ADMIN
        gate = RoleGate(gateway, store, context)

        result = await gate.resume()
        assert result.state == GateState.UNSELECTED
        assert result.message == ROLE_MISMATCH_MESSAGE
        assert not result.authenticated

    async def test_resume_without_session(self, gate):
        result = await gate.resume()
        assert result.state == GateState.UNSELECTED
        assert result.message is None
