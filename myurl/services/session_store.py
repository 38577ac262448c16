"""
Session Store

The only module that persists authentication sessions.

Services never read tokens from global state: request handlers load a
SessionContext from here and pass it explicitly. When a session ends
(logout, expiry, token rejected by the backend) the store deletes it and
emits a SessionInvalidated event to subscribers instead of callers
reloading pages or clearing storage on their own.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from myurl.core.models import SessionContext, User, utcnow
from myurl.db import async_session_maker
from myurl.db.models import AuthSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionInvalidated:
    session_id: str
    reason: str


SessionListener = Callable[[SessionInvalidated], None]


class SessionStore:
    """
    SQL-backed store of SessionContext values.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker = async_session_maker,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            session_maker: Async SQLAlchemy session factory
            clock: Returns the current time, used for expiry checks
        """
        self._session_maker = session_maker
        self._clock = clock
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for invalidation events.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def save(self, context: SessionContext) -> None:
        """Insert or replace a session."""
        async with self._session_maker() as db:
            await db.merge(
                AuthSession(
                    session_id=context.session_id,
                    access_token=context.access_token,
                    user_json=context.user.model_dump_json(by_alias=True),
                    created_at=self._clock(),
                    expires_at=context.expires_at,
                )
            )
            await db.commit()
        logger.debug(f"Session {context.session_id} saved for user {context.user.id}")

    async def load(self, session_id: Optional[str]) -> Optional[SessionContext]:
        """
        Load a live session.

        Expired sessions are invalidated (reason "expired") and reported as
        missing.

        Returns:
            SessionContext, or None if the id is unknown or expired
        """
        if not session_id:
            return None

        async with self._session_maker() as db:
            row = await db.get(AuthSession, session_id)

        if row is None:
            return None

        context = SessionContext(
            session_id=row.session_id,
            access_token=row.access_token,
            user=User.model_validate_json(row.user_json),
            expires_at=row.expires_at,
        )

        if context.is_expired(self._clock()):
            await self.invalidate(session_id, reason="expired")
            return None

        return context

    async def invalidate(self, session_id: str, reason: str = "logout") -> bool:
        """
        Delete a session and notify listeners.

        Returns:
            True if a session was deleted
        """
        async with self._session_maker() as db:
            row = await db.get(AuthSession, session_id)
            if row is None:
                return False
            await db.delete(row)
            await db.commit()

        logger.info(f"Session {session_id} invalidated ({reason})")
        event = SessionInvalidated(session_id=session_id, reason=reason)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Session listener failed for {session_id}: {e}", exc_info=True)
        return True
