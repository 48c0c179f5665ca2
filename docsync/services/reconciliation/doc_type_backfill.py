"""Fill missing document types on normalized rows from their display name."""

from docsync.models.reconciliation import BackfillReport
from docsync.repositories.client_document_repository import ClientDocumentRepository
from docsync.services.reconciliation.label_master import LabelMasterLoader
from docsync.utils.logging import get_logger
from docsync.utils.text import normalize_label

LOGGER = get_logger(__name__)

MAX_BACKFILL_ROWS = 5000
MAX_UNMATCHED_SAMPLES = 20


class DocTypeBackfill:
    """Resolves ``doc_type_id`` for rows that only carry a ``doc_name``.

    Rows are updated only while their type is still empty, so a row typed
    concurrently is left as it is. Database errors propagate to the caller.
    """

    def __init__(self, document_repository: ClientDocumentRepository, label_loader: LabelMasterLoader):
        self.document_repository = document_repository
        self.label_loader = label_loader

    async def run(self, limit: int = 0) -> BackfillReport:
        """Backfill up to ``limit`` rows (0 or less means the 5000-row cap).

        Returns:
            BackfillReport with up to 20 normalized names that had no master entry
        """
        max_rows = min(limit, MAX_BACKFILL_ROWS) if limit > 0 else MAX_BACKFILL_ROWS
        label_map = await self.label_loader.load()
        rows = await self.document_repository.list_untyped_named(max_rows)

        report = BackfillReport(inspected=len(rows))
        for row in rows:
            name = normalize_label(row.doc_name or "")
            doc_type_id = label_map.get(name)
            if doc_type_id is None:
                if name and len(report.unmatched_samples) < MAX_UNMATCHED_SAMPLES:
                    report.unmatched_samples.append(name)
                continue

            if await self.document_repository.set_doc_type_if_missing(row.id, doc_type_id):
                report.filled += 1

        LOGGER.info(
            "Document type backfill finished",
            extra={
                "inspected": report.inspected,
                "filled": report.filled,
                "unmatched": len(report.unmatched_samples),
            },
        )
        return report
