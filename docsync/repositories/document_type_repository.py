from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docsync.database.models import DocumentTypeMaster
from docsync.repositories.base_repository import BaseRepository


class DocumentTypeRepository(BaseRepository[DocumentTypeMaster]):
    """Repository for the document type master table."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentTypeMaster)

    async def list_active(self, category: str) -> List[DocumentTypeMaster]:
        """Fetch active master rows of one category.

        Args:
            category: Master category (e.g. "cs_doc")

        Returns:
            Active rows of that category
        """
        async with self.read_guard("list active", category=category):
            result = await self.session.execute(
                select(DocumentTypeMaster)
                .where(DocumentTypeMaster.category == category)
                .where(DocumentTypeMaster.is_active.is_(True))
            )
        return list(result.scalars().all())
