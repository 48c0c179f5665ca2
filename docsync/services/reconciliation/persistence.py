"""Writes reconciliation results to the normalized store."""

from typing import Any, Dict, Mapping

from sqlalchemy.exc import SQLAlchemyError

from docsync.models.documents import Candidate
from docsync.models.reconciliation import AnalysisOutcome, MetadataUpdate
from docsync.models.result import Result
from docsync.repositories.client_document_repository import ClientDocumentRepository
from docsync.services.reconciliation.planner import resolve_doc_type_id
from docsync.utils.exceptions import DuplicateDocumentError, PersistenceError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

SOURCE_DOCUMENTS_JSON = "documents_json"


class PersistenceWriter:
    """Per-row writes with per-item results.

    Each write commits on its own; a failure is rolled back by the
    repository and reported as a failed Result so the run can continue with
    the next item.
    """

    def __init__(self, repository: ClientDocumentRepository):
        self.repository = repository

    async def apply_metadata_update(self, update: MetadataUpdate) -> Result[None]:
        """Rewrite name, date, type, back-reference and owner of an existing row.

        OCR text, summary, model and confidence are left untouched.
        """
        candidate = update.candidate
        try:
            found = await self.repository.update_metadata(
                update.existing.id,
                doc_name=update.doc_name,
                applicable_date=update.applicable_date,
                doc_type_id=update.doc_type_id,
                entry_id=candidate.entry_id,
                owner_key=candidate.owner_key,
            )
        except SQLAlchemyError as e:
            return Result.from_exception(
                PersistenceError(f"cs_docs metadata update failed: {e}", original_error=e)
            )

        if not found:
            return Result.from_exception(
                PersistenceError(f"cs_docs row {update.existing.id} no longer exists")
            )

        LOGGER.debug(
            "Applied metadata update",
            extra={
                "url": candidate.url,
                "changes": sorted(field.value for field in update.changes),
            },
        )
        return Result.success()

    async def insert_analyzed(
        self,
        candidate: Candidate,
        outcome: AnalysisOutcome,
        label_map: Mapping[str, str],
    ) -> Result[None]:
        """Insert the normalized row for a newly analyzed candidate.

        A URL that was inserted concurrently is reported as a failure for
        this item only.
        """
        doc_type_id = outcome.doc_type_id
        if doc_type_id is None:
            doc_type_id = resolve_doc_type_id(candidate, None, label_map)

        applicable_date = outcome.applicable_date
        if applicable_date is None:
            applicable_date = candidate.acquired_date

        meta: Dict[str, Any] = {}
        if candidate.client_info_id is not None:
            meta["client_info_id"] = str(candidate.client_info_id)
        if outcome.degraded:
            meta["analysis_error"] = outcome.error

        try:
            await self.repository.insert_document(
                url=candidate.url,
                kaipoke_cs_id=candidate.owner_key,
                source=SOURCE_DOCUMENTS_JSON,
                doc_type_id=doc_type_id,
                doc_name=outcome.doc_name or candidate.label,
                ocr_text=outcome.ocr_text,
                summary=outcome.summary,
                applicable_date=applicable_date,
                doc_date_raw=candidate.acquired_at,
                cs_documents_entry_id=candidate.entry_id,
                llm_model=outcome.model,
                classification_confidence=outcome.confidence,
                meta=meta,
            )
        except DuplicateDocumentError as e:
            LOGGER.warning("Skipped insert of an already stored URL", extra={"url": candidate.url})
            return Result.from_exception(e)
        except SQLAlchemyError as e:
            return Result.from_exception(PersistenceError(f"cs_docs insert failed: {e}", original_error=e))

        LOGGER.debug(
            "Inserted normalized document",
            extra={"url": candidate.url, "degraded": outcome.degraded},
        )
        return Result.success()
