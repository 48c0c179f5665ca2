"""Top-level reconciliation run.

A run moves through SCANNING -> PLANNING -> ALLOCATING -> METADATA_SYNCING
-> ANALYZING -> DONE without branching back. Every external call is
awaited in sequence, so at most one OCR or LLM request is in flight and
``limit`` caps the external calls of the run.
"""

from datetime import date, timedelta
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from docsync.config import Settings
from docsync.core.openai_client import OpenAIClient
from docsync.models.reconciliation import (
    BudgetAllocation,
    RunOptions,
    RunReport,
    RunState,
)
from docsync.repositories.client_document_repository import ClientDocumentRepository
from docsync.repositories.client_info_repository import ClientInfoRepository
from docsync.repositories.document_type_repository import DocumentTypeRepository
from docsync.services.document_fetcher import DocumentFetcher
from docsync.services.ocr.ocr_client import OcrClient
from docsync.services.reconciliation.analysis import AnalysisOrchestrator
from docsync.services.reconciliation.budget import BudgetAllocator
from docsync.services.reconciliation.candidate_scanner import CandidateScanner
from docsync.services.reconciliation.label_master import LabelMasterLoader
from docsync.services.reconciliation.persistence import PersistenceWriter
from docsync.services.reconciliation.planner import ReconciliationPlanner
from docsync.services.summarization.summarizer import SummarizerClient
from docsync.utils.exceptions import ConfigurationError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


def cutoff_for(days_back: Optional[int], today: date) -> Optional[date]:
    """Oldest acquisition date to include; None disables the cutoff."""
    if days_back is None or days_back <= 0:
        return None
    return today - timedelta(days=days_back)


class ReconciliationRunner:
    """Wires scanner, planner, allocator, analysis and persistence into one run.

    ``run`` never raises. Configuration problems, per-item failures and
    unexpected errors all end up in the returned RunReport, which is
    marked not-ok when any of them occurred.

    Attributes:
        scanner: Embedded document scanner
        document_repository: Normalized store (batched URL lookup)
        label_loader: Label master loader
        analyzer: Fetch/OCR/summarize orchestrator
        writer: Normalized store writer
        allocator: Budget allocator
        missing_credentials: Names of absent OCR/LLM settings; analysis is skipped when non-empty
    """

    def __init__(
        self,
        scanner: CandidateScanner,
        document_repository: ClientDocumentRepository,
        label_loader: LabelMasterLoader,
        analyzer: AnalysisOrchestrator,
        writer: PersistenceWriter,
        allocator: Optional[BudgetAllocator] = None,
        missing_credentials: Optional[List[str]] = None,
        today: Callable[[], date] = date.today,
    ):
        self.scanner = scanner
        self.document_repository = document_repository
        self.label_loader = label_loader
        self.analyzer = analyzer
        self.writer = writer
        self.allocator = allocator or BudgetAllocator()
        self.missing_credentials = list(missing_credentials or [])
        self.today = today

    @classmethod
    def from_settings(cls, settings: Settings, session: AsyncSession) -> "ReconciliationRunner":
        """Build a runner with production collaborators bound to one session."""
        document_repository = ClientDocumentRepository(session)

        ocr_client = OcrClient(
            application_id=settings.ocr_application_id,
            api_key=settings.ocr_api_key,
            endpoint=settings.ocr_endpoint,
            language=settings.ocr_language,
            export_format=settings.ocr_export_format,
            poll_interval=settings.ocr_poll_interval_seconds,
            max_poll_attempts=settings.ocr_max_poll_attempts,
            page_range_threshold=settings.ocr_page_range_threshold,
            timeout=settings.http_timeout,
        )
        llm_client = OpenAIClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_api_url,
            timeout=settings.http_timeout,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
        )
        analyzer = AnalysisOrchestrator(
            fetcher=DocumentFetcher(timeout=settings.http_timeout),
            ocr_client=ocr_client,
            summarizer=SummarizerClient(
                llm_client, model=settings.openai_model, temperature=settings.llm_temperature
            ),
        )

        return cls(
            scanner=CandidateScanner(ClientInfoRepository(session)),
            document_repository=document_repository,
            label_loader=LabelMasterLoader(
                DocumentTypeRepository(session), category=settings.document_type_category
            ),
            analyzer=analyzer,
            writer=PersistenceWriter(document_repository),
            missing_credentials=settings.missing_ocr_credentials() + settings.missing_llm_credentials(),
        )

    async def run(self, options: RunOptions) -> RunReport:
        """Execute one reconciliation run.

        Args:
            options: Cutoff, budget, dry-run and verbosity

        Returns:
            RunReport for this run
        """
        report = RunReport(dry_run=options.dry_run)
        LOGGER.info(
            "Reconciliation run started",
            extra={
                "days_back": options.days_back,
                "limit": options.limit,
                "dry_run": options.dry_run,
            },
        )

        try:
            await self._run(options, report)
        except Exception as e:
            LOGGER.error(
                "Reconciliation run aborted",
                exc_info=True,
                extra={"state": report.state.value},
            )
            report.add_error("", f"fatal error during {report.state.value}: {e}")

        LOGGER.info("Reconciliation run finished", extra=report.to_dict())
        return report

    async def _run(self, options: RunOptions, report: RunReport) -> None:
        analysis_enabled = options.dry_run or self._check_configuration(report)

        report.state = RunState.SCANNING
        scan = await self.scanner.scan(cutoff_for(options.days_back, self.today()))
        report.scanned_docs = scan.scanned
        report.skipped_no_url = scan.skipped_no_url

        report.state = RunState.PLANNING
        label_map = await self.label_loader.load()
        existing_by_url = await self.document_repository.fetch_by_urls(
            candidate.url for candidate in scan.candidates
        )
        plan = ReconciliationPlanner(verbose=options.verbose).plan(
            scan.candidates, existing_by_url, label_map
        )
        report.unchanged_count = plan.unchanged

        report.state = RunState.ALLOCATING
        allocation = self.allocator.allocate(options.limit, plan.new, plan.metadata_updates)
        report.to_analyze_count = len(allocation.analyze_targets)
        report.skipped_limit_metadata = allocation.skipped_metadata
        report.skipped_limit_analyze = allocation.skipped_analyze
        self._log_allocation(allocation, options.verbose)

        if options.dry_run:
            report.state = RunState.DONE
            return

        report.state = RunState.METADATA_SYNCING
        for update in allocation.metadata_targets:
            result = await self.writer.apply_metadata_update(update)
            if result.ok:
                report.updated_meta_count += 1
            else:
                report.add_error(update.candidate.url, result.error)

        report.state = RunState.ANALYZING
        if analysis_enabled:
            for target in allocation.analyze_targets:
                outcome = await self.analyzer.analyze(target.candidate, target.doc_type_id)
                result = await self.writer.insert_analyzed(target.candidate, outcome, label_map)
                if not result.ok:
                    report.add_error(target.candidate.url, result.error)
                    continue
                report.analyzed_count += 1
                if outcome.degraded:
                    report.degraded_count += 1

        report.state = RunState.DONE

    def _check_configuration(self, report: RunReport) -> bool:
        """Record missing OCR/LLM settings once per run; False disables analysis."""
        if not self.missing_credentials:
            return True
        LOGGER.error(
            "OCR/LLM configuration incomplete; document analysis disabled for this run",
            extra={"missing": self.missing_credentials},
        )
        error = ConfigurationError(f"missing configuration: {', '.join(self.missing_credentials)}")
        report.add_error("", str(error))
        return False

    @staticmethod
    def _log_allocation(allocation: BudgetAllocation, verbose: bool) -> None:
        log = LOGGER.info if verbose else LOGGER.debug
        log(
            "Budget allocated",
            extra={
                "analyze_targets": len(allocation.analyze_targets),
                "metadata_targets": len(allocation.metadata_targets),
                "skipped_metadata": allocation.skipped_metadata,
                "skipped_analyze": allocation.skipped_analyze,
            },
        )
