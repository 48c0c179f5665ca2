from datetime import date
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docsync.database.models import ClientDocument
from docsync.models.documents import StoredDocument
from docsync.repositories.base_repository import BaseRepository
from docsync.utils.exceptions import DuplicateDocumentError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ClientDocumentRepository(BaseRepository[ClientDocument]):
    """Repository for normalized client documents (``cs_docs``).

    The file URL is the natural key: reads are batched by URL and inserts
    rely on the unique constraint to reject concurrent duplicates.
    """

    def __init__(self, session: AsyncSession):
        """Initialize client document repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, ClientDocument)

    async def fetch_by_urls(self, urls: Iterable[str]) -> Dict[str, StoredDocument]:
        """Fetch existing normalized documents for a set of URLs in one query.

        Args:
            urls: Candidate URLs

        Returns:
            Snapshots keyed by URL; empty when nothing matches
        """
        unique_urls = sorted(set(urls))
        if not unique_urls:
            return {}

        async with self.read_guard("look up urls in", count=len(unique_urls)):
            result = await self.session.execute(
                select(ClientDocument).where(ClientDocument.url.in_(unique_urls))
            )
        rows = result.scalars().all()

        LOGGER.debug(
            "Fetched existing normalized documents",
            extra={"requested": len(unique_urls), "found": len(rows)},
        )
        return {row.url: self._to_snapshot(row) for row in rows}

    async def update_metadata(
        self,
        document_id: UUID,
        doc_name: Optional[str],
        applicable_date: Optional[date],
        doc_type_id: Optional[str],
        entry_id: Optional[str],
        owner_key: Optional[str],
    ) -> bool:
        """Rewrite the metadata fields of one row, leaving analysis fields alone.

        Returns:
            True if the row was found and updated
        """
        updated = await self.update(
            document_id,
            doc_name=doc_name,
            applicable_date=applicable_date,
            doc_type_id=doc_type_id,
            cs_documents_entry_id=entry_id,
            kaipoke_cs_id=owner_key,
        )
        return updated is not None

    async def insert_document(self, **fields) -> ClientDocument:
        """Insert a new normalized document.

        Raises:
            DuplicateDocumentError: If a row with the same URL already exists
            SQLAlchemyError: On any other database failure
        """
        try:
            return await self.create(**fields)
        except IntegrityError as e:
            raise DuplicateDocumentError(
                f"cs_docs already has a row for url {fields.get('url')}", original_error=e
            ) from e

    async def list_untyped_named(self, limit: int) -> List[ClientDocument]:
        """Fetch rows that have a name but no document type yet."""
        async with self.read_guard("list untyped rows of"):
            result = await self.session.execute(
                select(ClientDocument)
                .where(ClientDocument.doc_type_id.is_(None))
                .where(ClientDocument.doc_name.is_not(None))
                .limit(limit)
            )
        return list(result.scalars().all())

    async def set_doc_type_if_missing(self, document_id: UUID, doc_type_id: str) -> bool:
        """Set the type of a row only while it is still untyped.

        Returns:
            True if a row was updated
        """
        async with self.write_transaction("backfill doc_type_id on", document_id=document_id):
            result = await self.session.execute(
                update(ClientDocument)
                .where(ClientDocument.id == document_id)
                .where(ClientDocument.doc_type_id.is_(None))
                .values(doc_type_id=doc_type_id)
            )
        return result.rowcount > 0

    @staticmethod
    def _to_snapshot(row: ClientDocument) -> StoredDocument:
        return StoredDocument(
            id=row.id,
            url=row.url,
            owner_key=row.kaipoke_cs_id,
            doc_type_id=row.doc_type_id,
            doc_name=row.doc_name,
            applicable_date=row.applicable_date,
            entry_id=row.cs_documents_entry_id,
        )
