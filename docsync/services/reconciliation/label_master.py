"""Document type label master."""

from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from docsync.repositories.document_type_repository import DocumentTypeRepository
from docsync.utils.logging import get_logger
from docsync.utils.text import normalize_label

LOGGER = get_logger(__name__)


class LabelMasterLoader:
    """Builds the normalized label -> document type id map.

    A failed query leaves the run without label resolution instead of
    aborting it: the loader logs and returns an empty map.
    """

    def __init__(self, repository: DocumentTypeRepository, category: str = "cs_doc"):
        self.repository = repository
        self.category = category

    async def load(self) -> Dict[str, str]:
        try:
            rows = await self.repository.list_active(self.category)
        except SQLAlchemyError:
            LOGGER.error(
                "Failed to load document type master",
                exc_info=True,
                extra={"category": self.category},
            )
            return {}

        label_map: Dict[str, str] = {}
        for row in rows:
            key = normalize_label(row.label or "")
            if key:
                label_map[key] = str(row.id)

        LOGGER.debug("Loaded document type master", extra={"labels": len(label_map)})
        return label_map
