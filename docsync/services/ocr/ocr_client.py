"""OCR client: submit a document, poll the task, download the text."""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import httpx

from docsync.models.result import Result
from docsync.services.ocr.response_parser import (
    STATUS_COMPLETED,
    STATUS_PROCESSING_FAILED,
    STATUS_UNKNOWN,
    parse_result_url,
    parse_task_id,
    parse_task_status,
)
from docsync.utils.exceptions import (
    OCRProcessingFailedError,
    OCRResultError,
    OCRSubmissionError,
    OCRTimeoutError,
)
from docsync.utils.logging import get_logger
from docsync.utils.text import normalize_ocr_text

LOGGER = get_logger(__name__)

POLL_INTERVAL_SECONDS = 2
MAX_POLL_ATTEMPTS = 10
PAGE_RANGE_THRESHOLD = 10
FIRST_PAGE_ONLY = "1-1"
MAX_ERROR_BODY_CHARS = 200

_PROCESS_PATH = "/processImage"
_STATUS_PATH = "/getTaskStatus"


class OcrTaskState(str, Enum):
    """Lifecycle of one OCR task."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class OcrTaskPoll:
    """Polling state of one submitted OCR task.

    ``observe`` applies one status response; the task ends in COMPLETED
    (with a result URL), FAILED, or TIMED_OUT once ``max_attempts`` status
    checks have passed without a terminal status.
    """

    task_id: str
    state: OcrTaskState = OcrTaskState.SUBMITTED
    attempts: int = 0
    last_status: str = STATUS_UNKNOWN
    result_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.state in (OcrTaskState.COMPLETED, OcrTaskState.FAILED, OcrTaskState.TIMED_OUT)

    def observe(self, status: str, result_url: Optional[str], max_attempts: int) -> OcrTaskState:
        """Advance the state machine with one status response.

        Args:
            status: Status attribute of the response
            result_url: Result URL attribute, if present
            max_attempts: Status checks allowed before timing out

        Returns:
            The new state
        """
        self.attempts += 1
        self.last_status = status

        if status == STATUS_COMPLETED:
            if result_url:
                self.result_url = result_url
                self.state = OcrTaskState.COMPLETED
            else:
                self.fail("OCR task Completed but no resultUrl")
        elif status == STATUS_PROCESSING_FAILED:
            self.fail("OCR task ProcessingFailed")
        elif self.attempts >= max_attempts:
            self.state = OcrTaskState.TIMED_OUT
            self.error = f"OCR timeout; last status = {status}"
        else:
            self.state = OcrTaskState.POLLING

        return self.state

    def fail(self, error: str) -> None:
        self.state = OcrTaskState.FAILED
        self.error = error


def resolve_endpoints(endpoint: str) -> Tuple[str, str]:
    """Derive the submit and status URLs from the configured endpoint.

    Accepts either the service base URL or a URL already ending in
    ``/processImage``.

    Returns:
        (process_url, status_url)
    """
    base = endpoint.rstrip("/")
    if base.lower().endswith(_PROCESS_PATH.lower()):
        root = base[: -len(_PROCESS_PATH)]
        return base, f"{root}{_STATUS_PATH}"
    return f"{base}{_PROCESS_PATH}", f"{base}{_STATUS_PATH}"


def page_range_for(page_count: int, threshold: int = PAGE_RANGE_THRESHOLD) -> Optional[str]:
    """Page range to submit: first page only for long documents, else everything."""
    return FIRST_PAGE_ONLY if page_count >= threshold else None


class OcrClient:
    """Client for an ABBYY Cloud OCR SDK compatible service.

    Each call returns a :class:`Result`; transport errors, non-2xx answers,
    failed tasks and poll timeouts all come back as failed results carrying
    the matching OCR exception.

    Attributes:
        process_url: Submission endpoint
        status_url: Task status endpoint
        language: Recognition language
        export_format: Result format
        poll_interval: Seconds to wait before each status check
        max_poll_attempts: Status checks before the task is timed out
        page_range_threshold: Estimated page count from which only page 1 is submitted
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        application_id: str,
        api_key: str,
        endpoint: str,
        language: str = "japanese",
        export_format: str = "txt",
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        page_range_threshold: int = PAGE_RANGE_THRESHOLD,
        timeout: int = 60,
    ):
        self.process_url, self.status_url = resolve_endpoints(endpoint)
        self.language = language
        self.export_format = export_format
        self.poll_interval = poll_interval
        self.max_poll_attempts = max(1, max_poll_attempts)
        self.page_range_threshold = page_range_threshold
        self.timeout = timeout
        self._auth = httpx.BasicAuth(application_id, api_key)

        LOGGER.info(
            "Initialized OCR client",
            extra={
                "process_url": self.process_url,
                "poll_interval": self.poll_interval,
                "max_poll_attempts": self.max_poll_attempts,
            },
        )

    async def extract_text(self, content: bytes, page_count: int) -> Result[str]:
        """Run a document through submit, poll and result download.

        Args:
            content: Raw document bytes
            page_count: Estimated page count, used for the page-range restriction

        Returns:
            Result carrying the NFKC-normalized text
        """
        start_time = time.time()
        page_range = page_range_for(page_count, self.page_range_threshold)

        submitted = await self.submit(content, page_range)
        if not submitted.ok:
            return submitted

        task = await self.poll(submitted.value)
        if task.state is not OcrTaskState.COMPLETED:
            error_class = OCRTimeoutError if task.state is OcrTaskState.TIMED_OUT else OCRProcessingFailedError
            LOGGER.warning(
                "OCR task did not complete",
                extra={"task_id": task.task_id, "state": task.state.value, "attempts": task.attempts},
            )
            return Result.from_exception(error_class(task.error))

        result = await self.fetch_result(task.result_url)
        if result.ok:
            LOGGER.info(
                "OCR extraction completed",
                extra={
                    "task_id": task.task_id,
                    "page_range": page_range,
                    "text_length": len(result.value),
                    "processing_time": round(time.time() - start_time, 2),
                },
            )
        return result

    async def submit(self, content: bytes, page_range: Optional[str] = None) -> Result[str]:
        """Submit a document for recognition.

        Args:
            content: Raw document bytes
            page_range: Optional page range such as "1-1"

        Returns:
            Result carrying the task id
        """
        data = {"language": self.language, "exportFormat": self.export_format}
        if page_range:
            data["pageRange"] = page_range
        files = {"file": ("input.pdf", content, "application/pdf")}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.process_url, data=data, files=files, auth=self._auth)
        except httpx.HTTPError as e:
            return Result.from_exception(OCRSubmissionError(f"OCR processImage request failed: {e}", e))

        body = response.text
        if not 200 <= response.status_code < 300:
            return Result.from_exception(
                OCRSubmissionError(
                    f"OCR processImage error {response.status_code}: {body[:MAX_ERROR_BODY_CHARS]}"
                )
            )

        task_id = parse_task_id(body)
        if not task_id:
            return Result.from_exception(OCRSubmissionError("OCR response has no task id"))

        LOGGER.debug("OCR task submitted", extra={"task_id": task_id, "page_range": page_range})
        return Result.success(task_id)

    async def poll(self, task_id: str) -> OcrTaskPoll:
        """Poll a task until it completes, fails or runs out of attempts.

        Args:
            task_id: Id returned by ``submit``

        Returns:
            The final polling state
        """
        task = OcrTaskPoll(task_id=task_id)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while not task.finished:
                await asyncio.sleep(self.poll_interval)

                try:
                    response = await client.get(
                        self.status_url, params={"taskId": task_id}, auth=self._auth
                    )
                except httpx.HTTPError as e:
                    task.fail(f"OCR getTaskStatus request failed: {e}")
                    break

                body = response.text
                if not 200 <= response.status_code < 300:
                    task.fail(
                        f"OCR getTaskStatus error {response.status_code}: {body[:MAX_ERROR_BODY_CHARS]}"
                    )
                    break

                status = parse_task_status(body)
                task.observe(status, parse_result_url(body), self.max_poll_attempts)
                LOGGER.debug(
                    "OCR task status",
                    extra={"task_id": task_id, "status": status, "attempt": task.attempts},
                )

        return task

    async def fetch_result(self, result_url: str) -> Result[str]:
        """Download the recognized text (unauthenticated) and NFKC-normalize it."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(result_url)
        except httpx.HTTPError as e:
            return Result.from_exception(OCRResultError(f"OCR result fetch failed: {e}", e))

        if not 200 <= response.status_code < 300:
            return Result.from_exception(
                OCRResultError(
                    f"OCR result fetch error {response.status_code}: {response.text[:MAX_ERROR_BODY_CHARS]}"
                )
            )

        return Result.success(normalize_ocr_text(response.text))
