"""Process-lifetime registry of portal sessions keyed by opaque tokens.

Sessions idle longer than ``idle_timeout`` seconds are dropped, and the
least recently used ones are evicted once ``max_sessions`` is reached.
"""
from __future__ import annotations
import logging
import time
import uuid
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.gateways.session_gateway import PasswordSessionGateway, SessionGateway
from portal.repositories.catalog_store import CatalogStore
from portal.services.portal import PortalController

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 1000
DEFAULT_IDLE_TIMEOUT = 30 * 60


class PortalRegistry:
    def __init__(
        self,
        store: CatalogStore,
        gateway_factory: Callable[[], SessionGateway],
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    ):
        self.store = store
        self.gateway_factory = gateway_factory
        self.max_sessions = max_sessions
        self.idle_timeout = idle_timeout
        # token -> (controller, last seen); least recently used first
        self._controllers: "OrderedDict[str, Tuple[PortalController, float]]" = (
            OrderedDict()
        )

    @classmethod
    def from_session_factory(
        cls, session_factory: async_sessionmaker[AsyncSession], **limits
    ) -> "PortalRegistry":
        return cls(
            CatalogStore(session_factory),
            lambda: PasswordSessionGateway(session_factory),
            **limits,
        )

    async def create(self) -> Tuple[str, PortalController]:
        self.prune()
        while self._controllers and len(self._controllers) >= self.max_sessions:
            oldest = next(iter(self._controllers))
            logger.info("Evicting portal session %s", oldest[:8])
            self.discard(oldest)
        token = uuid.uuid4().hex
        controller = PortalController(self.gateway_factory(), self.store)
        await controller.start()
        self._controllers[token] = (controller, time.monotonic())
        logger.info("Opened portal session %s", token[:8])
        return token, controller

    def get(self, token: Optional[str]) -> Optional[PortalController]:
        if not token or token not in self._controllers:
            return None
        controller, last_seen = self._controllers[token]
        now = time.monotonic()
        if now - last_seen >= self.idle_timeout:
            logger.info("Portal session %s expired", token[:8])
            self.discard(token)
            return None
        self._controllers[token] = (controller, now)
        self._controllers.move_to_end(token)
        return controller

    def discard(self, token: Optional[str]) -> None:
        entry = self._controllers.pop(token, None) if token else None
        if entry is not None:
            entry[0].close()

    def prune(self) -> None:
        """Drop every session idle for at least ``idle_timeout`` seconds."""
        cutoff = time.monotonic() - self.idle_timeout
        expired = [
            token
            for token, (_, last_seen) in self._controllers.items()
            if last_seen <= cutoff
        ]
        for token in expired:
            self.discard(token)
        if expired:
            logger.info("Pruned %d idle portal sessions", len(expired))

    def __len__(self) -> int:
        return len(self._controllers)
