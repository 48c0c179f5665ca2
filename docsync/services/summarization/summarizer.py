"""Summary and applicable-date extraction over OCR text."""

from typing import Any, Optional

from docsync.core.openai_client import OpenAIClient
from docsync.models.reconciliation import DocumentSummary
from docsync.models.result import Result
from docsync.prompts.summary_prompts import SUMMARY_SYSTEM_PROMPT, build_summary_prompt
from docsync.utils.dates import parse_iso_date
from docsync.utils.exceptions import APIClientError, SummarizationError
from docsync.utils.json_parser import parse_json_object
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

MAX_INPUT_CHARS = 8000
MAX_RAW_SUMMARY_CHARS = 1000


class SummarizerClient:
    """Asks the language model for a summary, an applicable date and a confidence.

    A response that is not valid JSON does not fail the document: the raw
    text becomes the summary and the date/confidence stay empty. Only a
    failed model call is reported as a failed result.

    Attributes:
        llm_client: Chat-completions client
        model: Model identifier recorded on the normalized row
        temperature: Sampling temperature
    """

    def __init__(self, llm_client: OpenAIClient, model: str, temperature: float = 0.1):
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature

    async def summarize(self, ocr_text: str) -> Result[DocumentSummary]:
        """Summarize OCR text and extract its applicable date.

        Args:
            ocr_text: Normalized OCR text; only the first 8000 characters are sent

        Returns:
            Result carrying a DocumentSummary, or the failure of the model call
        """
        prompt = build_summary_prompt(ocr_text[:MAX_INPUT_CHARS])

        try:
            content = await self.llm_client.generate_content(
                contents=prompt,
                system_instruction=SUMMARY_SYSTEM_PROMPT,
                generation_config={"temperature": self.temperature},
            )
        except (APIClientError, ValueError) as e:
            LOGGER.error("Summarization call failed", extra={"error": str(e)})
            return Result.from_exception(SummarizationError(str(e), original_error=e))

        return Result.success(self.parse_response(content))

    def parse_response(self, content: str) -> DocumentSummary:
        """Turn the model's answer into a DocumentSummary.

        Args:
            content: Raw response text

        Returns:
            DocumentSummary; degraded to the raw text when no JSON object parses
        """
        parsed = parse_json_object(content)
        if parsed is None:
            LOGGER.warning(
                "Summarization response is not JSON; using raw text",
                extra={"response_length": len(content)},
            )
            return DocumentSummary(
                summary=content[:MAX_RAW_SUMMARY_CHARS],
                applicable_date=None,
                confidence=None,
                model=self.model,
            )

        summary = parsed.get("summary")
        if not isinstance(summary, str):
            summary = content[:MAX_RAW_SUMMARY_CHARS]

        return DocumentSummary(
            summary=summary,
            applicable_date=parse_iso_date(parsed.get("applicable_date")),
            confidence=_coerce_confidence(parsed.get("confidence")),
            model=self.model,
        )


def _coerce_confidence(value: Any) -> Optional[float]:
    # bool is an int subclass; true/false is not a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(min(100.0, max(0.0, value)))
