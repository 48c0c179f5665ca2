"""Data models for one reconciliation run."""

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from docsync.models.documents import Candidate, StoredDocument

FAILURE_MARKER = "OCR_FAILED: "
MAX_FAILURE_SUMMARY_LENGTH = 2000


class Decision(str, Enum):
    """Per-candidate reconciliation decision."""

    NEW = "new"
    METADATA_UPDATE = "metadata-update"
    UNCHANGED = "unchanged"


class MetadataField(str, Enum):
    """Fields a metadata-only update may rewrite."""

    NAME = "doc_name"
    DATE = "applicable_date"
    TYPE = "doc_type_id"
    ENTRY_ID = "cs_documents_entry_id"


class RunState(str, Enum):
    """Stages of a reconciliation run, in execution order."""

    PENDING = "pending"
    SCANNING = "scanning"
    PLANNING = "planning"
    ALLOCATING = "allocating"
    METADATA_SYNCING = "metadata_syncing"
    ANALYZING = "analyzing"
    DONE = "done"


@dataclass
class ScanResult:
    """Candidates flattened from every client record plus scan counters."""

    candidates: List[Candidate] = field(default_factory=list)
    scanned: int = 0
    skipped_no_url: int = 0


@dataclass(frozen=True)
class MetadataUpdate:
    """A candidate whose embedded entry disagrees with its normalized row.

    Attributes:
        candidate: Embedded entry driving the update
        existing: Current normalized row for the same URL
        doc_type_id: Type id resolved during planning
        changes: Fields that disagree
    """

    candidate: Candidate
    existing: StoredDocument
    doc_type_id: Optional[str]
    changes: FrozenSet[MetadataField]

    @property
    def doc_name(self) -> Optional[str]:
        return self.candidate.label if self.candidate.has_label else self.existing.doc_name

    @property
    def applicable_date(self) -> Optional[date]:
        acquired = self.candidate.acquired_date
        return acquired if acquired is not None else self.existing.applicable_date


@dataclass(frozen=True)
class NewDocument:
    """A candidate whose URL has no normalized row yet."""

    candidate: Candidate
    doc_type_id: Optional[str]


@dataclass
class ReconciliationPlan:
    """Candidates split by decision."""

    new: List[NewDocument] = field(default_factory=list)
    metadata_updates: List[MetadataUpdate] = field(default_factory=list)
    unchanged: int = 0


@dataclass
class BudgetAllocation:
    """Work selected for this run within the processing budget."""

    analyze_targets: List[NewDocument] = field(default_factory=list)
    metadata_targets: List[MetadataUpdate] = field(default_factory=list)
    skipped_metadata: int = 0
    skipped_analyze: int = 0

    @property
    def skipped_for_budget(self) -> int:
        return self.skipped_metadata + self.skipped_analyze


@dataclass(frozen=True)
class DocumentSummary:
    """Structured answer of the summarization model."""

    summary: str
    applicable_date: Optional[date]
    confidence: Optional[float]
    model: str


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of OCR + summarization for one candidate.

    A degraded outcome keeps the row insertable: ``ocr_text`` is None and
    ``summary`` starts with ``FAILURE_MARKER``.
    """

    doc_type_id: Optional[str]
    doc_name: Optional[str]
    ocr_text: Optional[str] = None
    summary: Optional[str] = None
    applicable_date: Optional[date] = None
    confidence: Optional[float] = None
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(
        cls,
        error: str,
        doc_type_id: Optional[str],
        doc_name: Optional[str],
    ) -> "AnalysisOutcome":
        return cls(
            doc_type_id=doc_type_id,
            doc_name=doc_name,
            summary=f"{FAILURE_MARKER}{error}"[:MAX_FAILURE_SUMMARY_LENGTH],
            error=error,
        )


@dataclass(frozen=True)
class RunOptions:
    """Invocation parameters of a reconciliation run.

    Attributes:
        days_back: Only consider entries acquired within this many days; None or <= 0 means no cutoff
        limit: Processing budget shared by metadata updates and new analyses
        dry_run: Scan, plan and log only
        verbose: Log every decision at INFO level
    """

    days_back: Optional[int] = None
    limit: int = 5
    dry_run: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class RunError:
    """A per-item (or run-level, with empty url) failure."""

    url: str
    error: str


@dataclass
class RunReport:
    """Aggregate outcome of one reconciliation run."""

    ok: bool = True
    dry_run: bool = False
    state: RunState = RunState.PENDING
    scanned_docs: int = 0
    to_analyze_count: int = 0
    analyzed_count: int = 0
    degraded_count: int = 0
    updated_meta_count: int = 0
    unchanged_count: int = 0
    skipped_no_url: int = 0
    skipped_limit_metadata: int = 0
    skipped_limit_analyze: int = 0
    errors: List[RunError] = field(default_factory=list)

    @property
    def skipped_limit(self) -> int:
        return self.skipped_limit_metadata + self.skipped_limit_analyze

    def add_error(self, url: str, error: str) -> None:
        self.errors.append(RunError(url=url, error=error))
        self.ok = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["skipped_limit"] = self.skipped_limit
        return data


@dataclass
class BackfillReport:
    """Outcome of a document-type backfill pass."""

    inspected: int = 0
    filled: int = 0
    unmatched_samples: List[str] = field(default_factory=list)
