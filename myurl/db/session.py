"""
Database Session Management

Async engine and session factory for the authentication session store.

- The engine is built through the DatabaseAdapter for the configured URL
- init_db() creates missing tables at startup (Alembic handles upgrades)
- dispose_engine() releases connections at shutdown
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from myurl.core.setting import settings
from myurl.db import models  # noqa: F401  registers tables on SQLModel.metadata
from myurl.db.sqlite_adapter import get_database_adapter

db_adapter = get_database_adapter(settings.DATABASE_URL)

engine = db_adapter.create_engine(settings.DATABASE_URL)


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory configured for async use on ``bind``."""
    return async_sessionmaker(
        bind,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,  # rows are read after commit
        autoflush=False,
    )


async_session_maker = create_session_maker(engine)


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create tables that do not exist yet."""
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine(bind: AsyncEngine = engine) -> None:
    await bind.dispose()
