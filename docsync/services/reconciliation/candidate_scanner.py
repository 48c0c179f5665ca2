"""Flatten client records' embedded document lists into reconciliation candidates."""

import json
from datetime import date
from typing import Any, List, Optional

from docsync.models.documents import Candidate, EmbeddedDocumentRef
from docsync.models.reconciliation import ScanResult
from docsync.repositories.client_info_repository import ClientInfoRepository
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def parse_embedded_documents(raw: Any) -> List[EmbeddedDocumentRef]:
    """Normalize the ``documents`` column into a list of references.

    The column may hold a list, a JSON-encoded list, or nothing at all.
    Anything that does not decode to a list yields an empty list, and
    entries that are not objects are dropped.

    Args:
        raw: Column value as loaded from the database

    Returns:
        Parsed references in list order
    """
    entries = raw
    if isinstance(raw, str):
        try:
            entries = json.loads(raw)
        except ValueError:
            LOGGER.debug("Embedded documents value is not valid JSON", extra={"length": len(raw)})
            return []

    if not isinstance(entries, list):
        return []

    refs = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        refs.append(
            EmbeddedDocumentRef(
                entry_id=_text(entry.get("id")),
                url=_text(entry.get("url")),
                label=_text(entry.get("label")),
                doc_type_id=_text(entry.get("doc_type_id")),
                acquired_at=_text(entry.get("acquired_at")),
            )
        )
    return refs


class CandidateScanner:
    """Reads every client record with documents and emits one candidate per usable entry.

    Entries without a URL are counted and dropped. With a cutoff, entries
    acquired before it are dropped; entries whose acquisition date cannot be
    read are kept. Client records are only read.
    """

    def __init__(self, repository: ClientInfoRepository):
        self.repository = repository

    async def scan(self, cutoff: Optional[date] = None) -> ScanResult:
        """Scan all client records.

        Args:
            cutoff: Oldest acquisition date to include, or None for everything

        Returns:
            ScanResult with candidates in record order, then list order
        """
        result = ScanResult()
        records = await self.repository.list_with_documents()

        for record in records:
            refs = parse_embedded_documents(record.documents)
            for ref in refs:
                result.scanned += 1

                if not ref.url:
                    result.skipped_no_url += 1
                    continue

                candidate = Candidate(
                    url=ref.url,
                    client_info_id=record.id,
                    owner_key=record.kaipoke_cs_id,
                    label=ref.label,
                    doc_type_id=ref.doc_type_id,
                    acquired_at=ref.acquired_at,
                    entry_id=ref.entry_id,
                )

                if cutoff is not None:
                    acquired = candidate.acquired_date
                    if acquired is not None and acquired < cutoff:
                        continue

                result.candidates.append(candidate)

        LOGGER.info(
            "Scanned embedded documents",
            extra={
                "records": len(records),
                "scanned": result.scanned,
                "candidates": len(result.candidates),
                "skipped_no_url": result.skipped_no_url,
            },
        )
        return result
