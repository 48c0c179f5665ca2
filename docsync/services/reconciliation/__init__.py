"""Reconciliation of embedded document lists against the normalized store.

This package contains the stages of one run:
- CandidateScanner: Flattens client records' embedded lists into candidates
- ReconciliationPlanner: Classifies candidates as new, metadata update or unchanged
- BudgetAllocator: Splits the per-run budget between the two kinds of work
- AnalysisOrchestrator: Fetch, OCR and summarization of one new document
- PersistenceWriter: Per-row writes to the normalized store
- ReconciliationRunner: Wires the stages into one run
"""

from docsync.services.reconciliation.analysis import AnalysisOrchestrator
from docsync.services.reconciliation.budget import BudgetAllocator
from docsync.services.reconciliation.candidate_scanner import CandidateScanner, parse_embedded_documents
from docsync.services.reconciliation.doc_type_backfill import DocTypeBackfill
from docsync.services.reconciliation.label_master import LabelMasterLoader
from docsync.services.reconciliation.persistence import PersistenceWriter
from docsync.services.reconciliation.planner import ReconciliationPlanner, resolve_doc_type_id
from docsync.services.reconciliation.runner import ReconciliationRunner
from docsync.services.reconciliation.source_sync import SourceListSync

__all__ = [
    "AnalysisOrchestrator",
    "BudgetAllocator",
    "CandidateScanner",
    "parse_embedded_documents",
    "DocTypeBackfill",
    "LabelMasterLoader",
    "PersistenceWriter",
    "ReconciliationPlanner",
    "resolve_doc_type_id",
    "ReconciliationRunner",
    "SourceListSync",
]
