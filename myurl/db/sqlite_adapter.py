"""
SQLite Database Adapter

Default backend of the session store. Sessions are small rows read once
per authenticated request, which a single SQLite file handles well for a
single frontend instance.
"""

from typing import Any

from sqlalchemy.pool import NullPool

from myurl.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite (aiosqlite) adapter.

    - NullPool: a file database gains nothing from pooling
    - check_same_thread=False: aiosqlite runs the connection in its own thread
    """

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {"check_same_thread": False}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {"echo": False}


def get_database_adapter(database_url: str = "") -> DatabaseAdapter:
    """
    Return the adapter for a database URL.

    Only SQLite is shipped; other backends plug in here.
    """
    return SQLiteAdapter()
