"""
Database module for the authentication session store.

- DatabaseAdapter: backend-specific engine configuration
- async_session_maker / engine: shared async session factory and engine
- init_db / dispose_engine: startup and shutdown hooks
"""

from myurl.db.interface import DatabaseAdapter
from myurl.db.session import (
    async_session_maker,
    create_session_maker,
    dispose_engine,
    engine,
    init_db,
)

__all__ = [
    "DatabaseAdapter",
    "async_session_maker",
    "create_session_maker",
    "dispose_engine",
    "engine",
    "init_db",
]
