"""Classify candidates against the normalized store."""

from typing import Dict, Iterable, List, Mapping, Optional

from docsync.models.documents import Candidate, StoredDocument
from docsync.models.reconciliation import (
    Decision,
    MetadataField,
    MetadataUpdate,
    NewDocument,
    ReconciliationPlan,
)
from docsync.utils.logging import get_logger
from docsync.utils.text import normalize_label

LOGGER = get_logger(__name__)


def resolve_doc_type_id(
    candidate: Candidate,
    existing: Optional[StoredDocument],
    label_map: Mapping[str, str],
) -> Optional[str]:
    """Explicit entry type, then the stored type, then the label master."""
    if candidate.doc_type_id is not None:
        return candidate.doc_type_id
    if existing is not None and existing.doc_type_id is not None:
        return existing.doc_type_id
    if candidate.has_label:
        return label_map.get(normalize_label(candidate.label))
    return None


def diff_metadata(
    candidate: Candidate,
    existing: StoredDocument,
    doc_type_id: Optional[str],
) -> List[MetadataField]:
    """Fields on which the embedded entry disagrees with the stored row.

    A missing label or acquisition date on the entry never counts as a
    disagreement; type and back-reference are compared as-is.
    """
    changes = []
    if candidate.has_label and candidate.label != existing.doc_name:
        changes.append(MetadataField.NAME)

    acquired = candidate.acquired_date
    if acquired is not None and acquired != existing.applicable_date:
        changes.append(MetadataField.DATE)

    if doc_type_id != existing.doc_type_id:
        changes.append(MetadataField.TYPE)

    if candidate.entry_id != existing.entry_id:
        changes.append(MetadataField.ENTRY_ID)

    return changes


def collapse_by_url(candidates: Iterable[Candidate]) -> List[Candidate]:
    """One candidate per URL: the last one in scan order, at the first URL's position."""
    by_url: Dict[str, Candidate] = {}
    for candidate in candidates:
        by_url[candidate.url] = candidate
    return list(by_url.values())


class ReconciliationPlanner:
    """Splits candidates into new documents, metadata updates and unchanged rows."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def plan(
        self,
        candidates: Iterable[Candidate],
        existing_by_url: Mapping[str, StoredDocument],
        label_map: Mapping[str, str],
    ) -> ReconciliationPlan:
        """Compare every candidate with the row stored for its URL.

        Args:
            candidates: Scanned candidates
            existing_by_url: Stored rows keyed by URL
            label_map: Normalized label -> type id

        Returns:
            ReconciliationPlan preserving candidate order within each list
        """
        plan = ReconciliationPlan()

        for candidate in collapse_by_url(candidates):
            existing = existing_by_url.get(candidate.url)
            doc_type_id = resolve_doc_type_id(candidate, existing, label_map)

            if existing is None:
                plan.new.append(NewDocument(candidate=candidate, doc_type_id=doc_type_id))
                self._log_decision(candidate, Decision.NEW)
                continue

            changes = diff_metadata(candidate, existing, doc_type_id)
            if changes:
                plan.metadata_updates.append(
                    MetadataUpdate(
                        candidate=candidate,
                        existing=existing,
                        doc_type_id=doc_type_id,
                        changes=frozenset(changes),
                    )
                )
                self._log_decision(candidate, Decision.METADATA_UPDATE, changes)
            else:
                plan.unchanged += 1
                self._log_decision(candidate, Decision.UNCHANGED)

        LOGGER.info(
            "Reconciliation plan built",
            extra={
                "new": len(plan.new),
                "metadata_updates": len(plan.metadata_updates),
                "unchanged": plan.unchanged,
            },
        )
        return plan

    def _log_decision(
        self,
        candidate: Candidate,
        decision: Decision,
        changes: Optional[List[MetadataField]] = None,
    ) -> None:
        log = LOGGER.info if self.verbose else LOGGER.debug
        log(
            f"Candidate classified as {decision.value}",
            extra={
                "url": candidate.url,
                "owner_key": candidate.owner_key,
                "changes": [field.value for field in changes or []],
            },
        )
