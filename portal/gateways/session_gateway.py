"""Session gateway: credential checks and the signed-in identity.

``SessionGateway`` is the contract the role gate consumes. The concrete
``PasswordSessionGateway`` verifies argon2 password hashes stored in the
``accounts`` table and keeps the authenticated identity in memory for as long
as the owning portal session lives.
"""
from __future__ import annotations
import abc
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.errors import AuthError
from portal.models.persisted_portal import AccountRecord
from portal.models.portal import Identity
from portal.security import verify_password

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


SessionListener = Callable[[SessionEvent, Optional[Identity]], Awaitable[None]]


class SessionGateway(abc.ABC):
    """Issues and validates credentials; remembers who is signed in."""

    def __init__(self):
        self._identity: Optional[Identity] = None
        self._listeners: List[SessionListener] = []

    @abc.abstractmethod
    async def authenticate(self, email: str, password: str) -> Identity:
        """Validate credentials, raising AuthError when they are rejected."""

    async def sign_in(self, email: str, password: str) -> Identity:
        identity = await self.authenticate(email, password)
        self._identity = identity
        await self._notify(SessionEvent.SIGNED_IN, identity)
        return identity

    async def sign_out(self) -> None:
        had_session = self._identity is not None
        self._identity = None
        if had_session:
            await self._notify(SessionEvent.SIGNED_OUT, None)

    async def current_session(self) -> Optional[Identity]:
        return self._identity

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Subscribe to sign-in/sign-out events; returns an unsubscribe hook."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _notify(
        self, event: SessionEvent, identity: Optional[Identity]
    ) -> None:
        for listener in list(self._listeners):
            await listener(event, identity)


class PasswordSessionGateway(SessionGateway):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__()
        self.session_factory = session_factory

    async def authenticate(self, email: str, password: str) -> Identity:
        normalized = email.strip().lower()
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(AccountRecord).where(AccountRecord.email == normalized)
                )
                account = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Credential lookup failed: %s", exc)
            raise AuthError("Sign-in is unavailable right now.") from exc

        if account is None or not verify_password(password, account.password_hash):
            logger.info("Rejected credentials for %s", normalized)
            raise AuthError()
        return Identity(user_id=account.id, email=account.email)
