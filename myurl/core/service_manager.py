"""
Service Manager

Owns the process-wide service instances of the frontend:
- BackendClient: one pooled HTTP client for every backend call
- SessionStore: persisted authentication sessions
- RedirectSessionRegistry: live countdown/redirect sessions

Design:
- Initialized once on application startup, released on shutdown
- Endpoints get instances through FastAPI dependencies, so tests can
  override them with app.dependency_overrides
- Shutdown closes every live redirect session so no countdown task outlives
  the application
"""

import logging
from typing import Optional

from myurl.core.setting import settings
from myurl.db import dispose_engine, init_db
from myurl.services.backend_client import BackendClient
from myurl.services.session_registry import RedirectSessionRegistry
from myurl.services.session_store import SessionInvalidated, SessionStore

logger = logging.getLogger(__name__)

_client: Optional[BackendClient] = None
_store: Optional[SessionStore] = None
_registry: Optional[RedirectSessionRegistry] = None


class ServiceNotInitializedError(RuntimeError):
    def __init__(self, name: str):
        super().__init__(f"{name} is not initialized; was the startup hook run?")


def get_backend_client() -> BackendClient:
    if _client is None:
        raise ServiceNotInitializedError("BackendClient")
    return _client


def get_session_store() -> SessionStore:
    if _store is None:
        raise ServiceNotInitializedError("SessionStore")
    return _store


def get_session_registry() -> RedirectSessionRegistry:
    if _registry is None:
        raise ServiceNotInitializedError("RedirectSessionRegistry")
    return _registry


def _log_invalidation(event: SessionInvalidated) -> None:
    logger.info(f"Session {event.session_id} ended: {event.reason}")


async def initialize_services() -> None:
    """Create tables and the shared service instances."""
    global _client, _store, _registry

    if _client is not None:
        logger.warning("Services already initialized")
        return

    await init_db()

    _client = BackendClient(settings.API_URL, timeout=settings.HTTP_TIMEOUT_SECONDS)
    _store = SessionStore()
    _store.subscribe(_log_invalidation)
    _registry = RedirectSessionRegistry()

    logger.info(
        f"Services initialized: "
        f"api_url={settings.API_URL}, "
        f"countdown={settings.COUNTDOWN_SECONDS}s"
    )


async def shutdown_services() -> None:
    """Close redirect sessions, the HTTP client and the database engine."""
    global _client, _store, _registry

    if _registry is not None:
        await _registry.close_all()

    if _client is not None:
        await _client.aclose()

    await dispose_engine()

    _client = None
    _store = None
    _registry = None
    logger.info("Services shut down")
