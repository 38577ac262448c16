"""
Authentication Service

Login, signup and logout against the backend's ``/auth`` endpoints.

A successful login produces a SessionContext that is saved in the
SessionStore; the browser only receives the session id.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from myurl.core.exceptions import AuthenticationError, SessionExpiredError
from myurl.core.models import SessionContext, User, utcnow
from myurl.core.setting import settings
from myurl.services.backend_client import BackendClient, BackendResponse
from myurl.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class AuthResponse(BaseModel):
    """Body of a successful ``/auth/login`` or ``/auth/signup`` call."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    user: User


class AuthService:
    """
    Authentication flows backed by the link backend.
    """

    def __init__(
        self,
        client: BackendClient,
        store: SessionStore,
        session_ttl_seconds: int = settings.AUTH_SESSION_TTL_SECONDS,
    ):
        self.client = client
        self.store = store
        self.session_ttl = timedelta(seconds=session_ttl_seconds)

    async def login(self, email: str, password: str) -> SessionContext:
        """
        Log in with email and password.

        Raises:
            AuthenticationError: If the backend rejects the credentials
            NetworkError: If the backend is unreachable
        """
        response = await self.client.post(
            "/auth/login",
            {"email": email, "password": password},
        )
        return await self._open_session(response, "Failed to login")

    async def signup(self, full_name: str, email: str, password: str) -> SessionContext:
        """
        Create an account and log in.

        Raises:
            AuthenticationError: If the backend rejects the signup
            NetworkError: If the backend is unreachable
        """
        response = await self.client.post(
            "/auth/signup",
            {"fullName": full_name, "email": email, "password": password},
        )
        return await self._open_session(response, "Failed to sign up")

    async def current_user(self, context: SessionContext) -> User:
        """
        Fetch the logged-in user from the backend.

        Raises:
            SessionExpiredError: If the backend rejected the token; the
                session is invalidated before the error is raised
            AuthenticationError: If the backend answered with another error
        """
        try:
            response = await self.client.get("/auth/me", session=context)
        except SessionExpiredError:
            await self.store.invalidate(context.session_id, reason="expired")
            raise

        if not response.success:
            raise AuthenticationError(response.message or "Failed to load user", response.status_code)

        payload = response.data
        if isinstance(payload, dict) and isinstance(payload.get("user"), dict):
            payload = payload["user"]
        try:
            return User.model_validate(payload)
        except ValidationError as e:
            raise AuthenticationError("Invalid user data received", response.status_code) from e

    async def logout(self, session_id: Optional[str]) -> bool:
        """End a session. Returns False when there was nothing to end."""
        if not session_id:
            return False
        return await self.store.invalidate(session_id, reason="logout")

    async def _open_session(self, response: BackendResponse, failure_message: str) -> SessionContext:
        if not response.success:
            raise AuthenticationError(response.message or failure_message, response.status_code)

        try:
            auth = AuthResponse.model_validate(response.data)
        except ValidationError as e:
            logger.warning(f"Unexpected auth response: {e}")
            raise AuthenticationError(failure_message, response.status_code) from e

        context = SessionContext(
            session_id=secrets.token_urlsafe(32),
            access_token=auth.access_token,
            user=auth.user,
            expires_at=utcnow() + self.session_ttl,
        )
        await self.store.save(context)
        logger.info(f"User {auth.user.id} logged in")
        return context
