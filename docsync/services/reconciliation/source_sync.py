"""Write normalized-row edits back into the owner's embedded documents list."""

from typing import Optional

from docsync.repositories.client_info_repository import ClientInfoRepository
from docsync.utils.dates import normalize_date_only
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SourceListSync:
    """Keeps ``cs_kaipoke_info.documents`` consistent with an edited ``cs_docs`` row."""

    def __init__(self, client_repository: ClientInfoRepository):
        self.client_repository = client_repository

    async def sync_document(
        self,
        owner_key: Optional[str],
        url: Optional[str],
        doc_name: Optional[str] = None,
        doc_date: Optional[str] = None,
    ) -> bool:
        """Copy name and date onto every entry of the owner's list with the same URL.

        Entries that are not objects, or point at another URL, are kept as
        they are. Nothing is written when the stored value is not a list or
        when no entry changes.

        Args:
            owner_key: Business key of the client record
            url: File URL identifying the entries
            doc_name: New label, if any
            doc_date: New acquisition date (any ISO form), if any

        Returns:
            True if the list was rewritten
        """
        if not owner_key or not url:
            return False

        record = await self.client_repository.get_by_owner_key(owner_key)
        if record is None or not isinstance(record.documents, list):
            return False

        date_only = normalize_date_only(doc_date)
        changed = False
        next_documents = []
        for entry in record.documents:
            if not isinstance(entry, dict) or entry.get("url") != url:
                next_documents.append(entry)
                continue

            updated = dict(entry)
            if doc_name:
                updated["label"] = doc_name
            if date_only:
                updated["acquired_at"] = date_only
            changed = changed or updated != entry
            next_documents.append(updated)

        if not changed:
            return False

        written = await self.client_repository.replace_documents(record.id, next_documents)
        LOGGER.info(
            "Synced normalized document back to embedded list",
            extra={"owner_key": owner_key, "url": url, "written": written},
        )
        return written
