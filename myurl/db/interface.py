"""
Database Abstraction Interface

The authentication session store only needs an async engine. Engine
construction differs per backend (pooling, connect args), so each backend
provides an adapter and the rest of the code never branches on the dialect.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import Pool


class DatabaseAdapter(ABC):
    """
    Contract for database backends of the session store.
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create the async engine for this backend.

        Args:
            database_url: Async SQLAlchemy URL
            **kwargs: Overrides merged over the adapter's engine options
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        pool_class = self.get_pool_class()
        if pool_class is not None:
            engine_kwargs["poolclass"] = pool_class

        return create_async_engine(
            database_url,
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """Pool class for this backend, or None for SQLAlchemy's default."""
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """DBAPI connect arguments."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Extra create_async_engine options."""
        pass
