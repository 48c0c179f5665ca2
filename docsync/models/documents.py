"""Data models for embedded document references and their normalized rows."""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from docsync.utils.dates import to_calendar_date


@dataclass(frozen=True)
class EmbeddedDocumentRef:
    """One entry of a client's embedded ``documents`` list.

    Attributes:
        entry_id: Local id of the entry inside the list
        url: File URL; entries without one are never reconciled
        label: Free-text label typed by staff
        doc_type_id: Explicit document type id, when the entry carries one
        acquired_at: Acquisition timestamp as stored (ISO date or timestamp)
    """

    entry_id: Optional[str] = None
    url: Optional[str] = None
    label: Optional[str] = None
    doc_type_id: Optional[str] = None
    acquired_at: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    """An embedded document reference joined to its owning client record.

    Attributes:
        url: File URL (reconciliation key)
        client_info_id: Id of the owning client record
        owner_key: Business key of the owner, copied onto normalized rows
        label: Label from the embedded entry
        doc_type_id: Explicit type id from the embedded entry
        acquired_at: Raw acquisition string from the embedded entry
        entry_id: Id of the embedded entry (back-reference)
    """

    url: str
    client_info_id: Optional[UUID]
    owner_key: Optional[str]
    label: Optional[str] = None
    doc_type_id: Optional[str] = None
    acquired_at: Optional[str] = None
    entry_id: Optional[str] = None

    @property
    def acquired_date(self) -> Optional[date]:
        """Acquisition timestamp truncated to a calendar date."""
        return to_calendar_date(self.acquired_at)

    @property
    def has_label(self) -> bool:
        return bool(self.label and self.label.strip())


@dataclass(frozen=True)
class StoredDocument:
    """Reconciliation-relevant snapshot of a normalized document row.

    Attributes:
        id: Row id
        url: File URL (unique across the store)
        owner_key: Owner business key
        doc_type_id: Document type id
        doc_name: Display name
        applicable_date: Date the document's terms begin
        entry_id: Back-reference to the embedded entry it came from
    """

    id: UUID
    url: str
    owner_key: Optional[str] = None
    doc_type_id: Optional[str] = None
    doc_name: Optional[str] = None
    applicable_date: Optional[date] = None
    entry_id: Optional[str] = None
