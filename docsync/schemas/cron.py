"""Response schemas for the cron endpoints."""

from typing import List

from pydantic import BaseModel, Field

from docsync.models.reconciliation import BackfillReport, RunReport


class RunErrorResponse(BaseModel):
    """One failed item of a run (empty url for run-level errors)."""

    url: str = Field(..., description="Candidate URL, or empty for run-level errors")
    error: str = Field(..., description="Failure description")


class RunReportResponse(BaseModel):
    """Outcome of one reconciliation run."""

    ok: bool = Field(..., description="False when any error was recorded")
    dry_run: bool = Field(..., description="Whether writes were skipped")
    state: str = Field(..., description="Last state the run reached")
    scanned_docs: int = Field(..., description="Embedded entries inspected")
    to_analyze_count: int = Field(..., description="New documents selected for analysis")
    analyzed_count: int = Field(..., description="New documents analyzed and inserted")
    degraded_count: int = Field(..., description="Inserted documents whose analysis failed")
    updated_meta_count: int = Field(..., description="Rows whose metadata was synced")
    unchanged_count: int = Field(..., description="Rows already in sync")
    skipped_no_url: int = Field(..., description="Embedded entries without a URL")
    skipped_limit: int = Field(..., description="Items left for a later run by the budget")
    skipped_limit_metadata: int = Field(..., description="Metadata updates left by the budget")
    skipped_limit_analyze: int = Field(..., description="New documents left by the budget")
    errors: List[RunErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: RunReport) -> "RunReportResponse":
        return cls.model_validate(report.to_dict())


class BackfillResponse(BaseModel):
    """Outcome of a document type backfill pass."""

    ok: bool = True
    inspected: int = Field(..., description="Untyped named rows inspected")
    filled: int = Field(..., description="Rows that received a type")
    unmatched_samples: List[str] = Field(
        default_factory=list, description="Up to 20 names without a master entry"
    )

    @classmethod
    def from_report(cls, report: BackfillReport) -> "BackfillResponse":
        return cls(
            inspected=report.inspected,
            filled=report.filled,
            unmatched_samples=list(report.unmatched_samples),
        )
