"""
Redirect Session Registry

Keeps the live RedirectControllers of this application instance, keyed by
an opaque session id handed to the browser.

Design:
- One controller per visit; a new visit always gets a fresh controller
  (and therefore a fresh redirect latch), even for the same short code
- Finished sessions stay readable for a retention window, then are closed
- Capacity is bounded; the oldest session is evicted when full
- A visit is registered once resolution has finished; until then it is
  only tracked so shutdown can close it
"""

import functools
import logging
import time
import uuid
from typing import Dict, Optional, Tuple

from myurl.core.exceptions import RedirectSessionNotFoundError
from myurl.core.setting import settings
from myurl.services.redirect_controller import Enricher, RedirectController, Resolver

logger = logging.getLogger(__name__)


class RedirectSessionRegistry:
    """
    In-memory registry of redirect sessions.
    """

    def __init__(
        self,
        max_sessions: int = settings.MAX_REDIRECT_SESSIONS,
        retention_seconds: float = settings.REDIRECT_SESSION_RETENTION_SECONDS,
    ):
        self.max_sessions = max_sessions
        self.retention_seconds = retention_seconds
        self._sessions: Dict[str, RedirectController] = {}
        self._opened_at: Dict[str, float] = {}
        self._loading: Dict[str, RedirectController] = {}

    def __len__(self) -> int:
        """Number of registered sessions; visits still resolving are not counted."""
        return len(self._sessions)

    @property
    def loading(self) -> int:
        """Number of visits whose link is still being resolved."""
        return len(self._loading)

    async def open(
        self,
        short_code: str,
        resolver: Resolver,
        enricher: Enricher,
        countdown_seconds: Optional[int] = None,
    ) -> Tuple[str, RedirectController]:
        """
        Create a controller for a visit and run it until resolution finishes.

        Args:
            short_code: Short code from the route
            resolver: Link resolver for this visit
            enricher: Metadata enricher for this visit
            countdown_seconds: Optional per-visit countdown length

        Returns:
            Tuple of (session_id, controller)
        """
        session_id = uuid.uuid4().hex
        controller = RedirectController(
            short_code,
            resolver,
            enricher,
            navigator=functools.partial(self._log_navigation, session_id),
            countdown_seconds=countdown_seconds,
            on_cancel=functools.partial(self._log_cancel, session_id),
        )

        # Only settled sessions are registered, so eviction never hits a visit mid-resolution
        self._loading[session_id] = controller
        try:
            await controller.start()
        except BaseException:
            await controller.close()
            raise
        finally:
            self._loading.pop(session_id, None)

        if controller.closed:
            # Torn down by close_all while resolving
            return session_id, controller

        await self._evict()
        self._sessions[session_id] = controller
        self._opened_at[session_id] = time.monotonic()
        return session_id, controller

    def get(self, session_id: str) -> RedirectController:
        """
        Raises:
            RedirectSessionNotFoundError: If the session is unknown
        """
        controller = self._sessions.get(session_id)
        if controller is None:
            raise RedirectSessionNotFoundError(session_id)
        return controller

    async def discard(self, session_id: str) -> None:
        """Close and forget a session. Unknown ids are ignored."""
        controller = self._sessions.pop(session_id, None)
        self._opened_at.pop(session_id, None)
        if controller is not None:
            await controller.close()

    async def close_all(self) -> None:
        """Close every session (application shutdown)."""
        for controller in list(self._loading.values()):
            await controller.close()
        for session_id in list(self._sessions):
            await self.discard(session_id)
        logger.info("All redirect sessions closed")

    async def _evict(self) -> None:
        now = time.monotonic()
        expired = [
            session_id
            for session_id, controller in self._sessions.items()
            if (controller.closed or controller.is_terminal)
            and now - self._opened_at[session_id] >= self.retention_seconds
        ]
        for session_id in expired:
            await self.discard(session_id)

        while len(self._sessions) >= self.max_sessions:
            oldest = min(self._opened_at, key=self._opened_at.get)
            logger.warning(f"Redirect session registry full, evicting {oldest}")
            await self.discard(oldest)

    @staticmethod
    def _log_navigation(session_id: str, url: str) -> None:
        # The browser performs the navigation after reading navigate_to
        logger.info(f"Session {session_id} navigating to {url}")

    @staticmethod
    def _log_cancel(session_id: str) -> None:
        logger.info(f"Session {session_id} returned to host")
