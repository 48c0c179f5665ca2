"""Async SQLAlchemy engine, session factory and database client."""

from typing import Any, Dict, List

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from docsync.config import Settings
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Tables a reconciliation run reads or writes
REQUIRED_TABLES = ("cs_kaipoke_info", "user_doc_master", "cs_docs")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database.

    Args:
        settings: Application settings

    Returns:
        AsyncEngine: Engine bound to ``settings.database_url``
    """
    return create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.database_echo,
        # Disable prepared statement cache for PgBouncer compatibility
        connect_args={"statement_cache_size": 0},
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory for an engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class DatabaseClient:
    """Startup check, shutdown and health probe for the document store."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def connect(self) -> None:
        """Open one connection and report tables the migration has not created yet.

        Raises:
            SQLAlchemyError / OSError: If the database cannot be reached
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            missing = await self._missing_tables(conn)

        if missing:
            LOGGER.warning("Database is missing reconciliation tables", extra={"missing": missing})
        else:
            LOGGER.info("Database connection successful")

    async def disconnect(self) -> None:
        await self.engine.dispose()
        LOGGER.info("Database connection closed")

    async def health_check(self) -> Dict[str, Any]:
        """Probe the database.

        Returns:
            ``{"status": "healthy"}`` when reachable with every table present,
            otherwise ``"unhealthy"`` with the error or the missing tables
        """
        try:
            async with self.engine.connect() as conn:
                await conn.scalar(text("SELECT 1"))
                missing = await self._missing_tables(conn)
        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}

        if missing:
            return {"status": "unhealthy", "missing_tables": missing}
        return {"status": "healthy"}

    @staticmethod
    async def _missing_tables(conn) -> List[str]:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
        return [table for table in REQUIRED_TABLES if table not in existing]
