"""Fetch -> OCR -> summarize for one candidate."""

from typing import Optional

from docsync.models.documents import Candidate
from docsync.models.reconciliation import AnalysisOutcome
from docsync.services.document_fetcher import DocumentFetcher, estimate_page_count
from docsync.services.ocr.ocr_client import OcrClient
from docsync.services.summarization.summarizer import SummarizerClient
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AnalysisOrchestrator:
    """Analyzes one candidate and always returns an AnalysisOutcome.

    Any hard failure (download, OCR, empty text, model call) produces a
    degraded outcome so the document still gets a row that records why it
    could not be read. The type id and label resolved during planning are
    carried into every outcome.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        ocr_client: OcrClient,
        summarizer: SummarizerClient,
    ):
        self.fetcher = fetcher
        self.ocr_client = ocr_client
        self.summarizer = summarizer

    async def analyze(self, candidate: Candidate, doc_type_id: Optional[str] = None) -> AnalysisOutcome:
        """Run the full analysis of one candidate.

        Args:
            candidate: Candidate to analyze
            doc_type_id: Type id resolved during planning

        Returns:
            A successful or degraded AnalysisOutcome; never raises
        """
        try:
            return await self._analyze(candidate, doc_type_id)
        except Exception as e:
            LOGGER.error(
                "Unexpected error during document analysis",
                exc_info=True,
                extra={"url": candidate.url},
            )
            return self._degraded(candidate, doc_type_id, f"unexpected error: {e}")

    async def _analyze(self, candidate: Candidate, doc_type_id: Optional[str]) -> AnalysisOutcome:
        fetched = await self.fetcher.fetch(candidate.url)
        if not fetched.ok:
            return self._degraded(candidate, doc_type_id, fetched.error)

        page_count = estimate_page_count(fetched.value.content)

        extracted = await self.ocr_client.extract_text(fetched.value.content, page_count)
        if not extracted.ok:
            return self._degraded(candidate, doc_type_id, extracted.error)

        ocr_text = extracted.value
        if not ocr_text or not ocr_text.strip():
            return self._degraded(candidate, doc_type_id, "OCR returned empty text")

        summarized = await self.summarizer.summarize(ocr_text)
        if not summarized.ok:
            return self._degraded(candidate, doc_type_id, f"summarization failed: {summarized.error}")

        summary = summarized.value
        LOGGER.info(
            "Document analyzed",
            extra={
                "url": candidate.url,
                "page_count": page_count,
                "text_length": len(ocr_text),
                "applicable_date": summary.applicable_date.isoformat() if summary.applicable_date else None,
            },
        )
        return AnalysisOutcome(
            doc_type_id=doc_type_id,
            doc_name=candidate.label,
            ocr_text=ocr_text,
            summary=summary.summary,
            applicable_date=summary.applicable_date,
            confidence=summary.confidence,
            model=summary.model,
        )

    @staticmethod
    def _degraded(candidate: Candidate, doc_type_id: Optional[str], error: Optional[str]) -> AnalysisOutcome:
        message = error or "unknown error"
        LOGGER.warning(
            "Document analysis degraded",
            extra={"url": candidate.url, "error": message},
        )
        return AnalysisOutcome.failed(message, doc_type_id=doc_type_id, doc_name=candidate.label)
