from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docsync.database.models import ClientInfo
from docsync.repositories.base_repository import BaseRepository
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ClientInfoRepository(BaseRepository[ClientInfo]):
    """Repository for client records and their embedded document lists."""

    def __init__(self, session: AsyncSession):
        """Initialize client info repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, ClientInfo)

    async def list_with_documents(self) -> List[ClientInfo]:
        """Fetch every client record that has a documents value.

        Returns:
            Client records ordered by business key
        """
        query = (
            select(ClientInfo)
            .where(ClientInfo.documents.is_not(None))
            .order_by(ClientInfo.kaipoke_cs_id)
        )
        async with self.read_guard("list"):
            result = await self.session.execute(query)
        records = list(result.scalars().all())

        LOGGER.debug(f"Fetched {len(records)} client records with documents")
        return records

    async def get_by_owner_key(self, kaipoke_cs_id: str) -> Optional[ClientInfo]:
        """Fetch a client record by its business key."""
        async with self.read_guard("read", kaipoke_cs_id=kaipoke_cs_id):
            result = await self.session.execute(
                select(ClientInfo).where(ClientInfo.kaipoke_cs_id == kaipoke_cs_id)
            )
        return result.scalar_one_or_none()

    async def replace_documents(self, client_info_id: UUID, documents: List[Any]) -> bool:
        """Overwrite the embedded documents list of one client record.

        Args:
            client_info_id: Client record id
            documents: New list value

        Returns:
            True if the record was found and updated
        """
        return await self.update(client_info_id, documents=documents) is not None
