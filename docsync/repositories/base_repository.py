from contextlib import asynccontextmanager
from typing import AsyncIterator, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docsync.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Shared lookup and write helpers for one mapped table.

    Reconciliation writes row by row, so every write runs in its own
    ``write_transaction``: committed on success, rolled back and re-raised
    on ``SQLAlchemyError`` so the session stays usable for the next item.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: Mapped class managed by this repository
        """
        self.session = session
        self.model = model

    @asynccontextmanager
    async def write_transaction(self, action: str, **context) -> AsyncIterator[AsyncSession]:
        """Commit the enclosed writes, or roll them back and re-raise.

        Args:
            action: Short description used in the failure log
            **context: Extra log fields identifying the row
        """
        try:
            yield self.session
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            LOGGER.error(
                f"Failed to {action} {self.model.__tablename__}",
                exc_info=True,
                extra={key: str(value) for key, value in context.items()},
            )
            raise

    @asynccontextmanager
    async def read_guard(self, action: str, **context) -> AsyncIterator[AsyncSession]:
        """Roll back and re-raise when an enclosed read fails.

        A failed statement aborts the Postgres transaction, so without the
        rollback every later statement on the shared session would fail too.
        """
        try:
            yield self.session
        except SQLAlchemyError:
            await self.session.rollback()
            LOGGER.warning(
                f"Failed to {action} {self.model.__tablename__}",
                extra={key: str(value) for key, value in context.items()},
            )
            raise

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """Fetch one row by primary key, or None."""
        async with self.read_guard("read", id=id):
            result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def create(self, **fields) -> ModelType:
        """Insert a row and return the flushed instance."""
        instance = self.model(**fields)
        async with self.write_transaction("insert into"):
            self.session.add(instance)
            await self.session.flush()
        return instance

    async def update(self, id: UUID, **fields) -> Optional[ModelType]:
        """Set mapped attributes on one row.

        Unknown field names are ignored.

        Returns:
            The updated row, or None if no row has that id
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        async with self.write_transaction("update", id=id):
            for key, value in fields.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
            await self.session.flush()
        return instance
