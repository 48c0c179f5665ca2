"""Tests for the OCR client and its task state machine."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from docsync.services.ocr.ocr_client import (
    OcrClient,
    OcrTaskPoll,
    OcrTaskState,
    page_range_for,
    resolve_endpoints,
)
from docsync.utils.exceptions import (
    OCRProcessingFailedError,
    OCRResultError,
    OCRSubmissionError,
    OCRTimeoutError,
)

SUBMIT_BODY = '<response><task id="task-1" status="Queued"/></response>'


def _response(status_code: int = 200, text: str = "") -> Mock:
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


def _status_body(status: str, result_url: str = "") -> str:
    url_attr = f' resultUrl="{result_url}"' if result_url else ""
    return f'<response><task id="task-1" status="{status}"{url_attr}/></response>'


def _mock_client(mock_client_class: Mock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    mock_client_class.return_value = mock_client
    return mock_client


class TestEndpoints:
    def test_base_url_gets_both_paths(self):
        assert resolve_endpoints("https://cloud.ocrsdk.com/") == (
            "https://cloud.ocrsdk.com/processImage",
            "https://cloud.ocrsdk.com/getTaskStatus",
        )

    def test_process_url_is_kept_as_is(self):
        assert resolve_endpoints("https://cloud.ocrsdk.com/processImage") == (
            "https://cloud.ocrsdk.com/processImage",
            "https://cloud.ocrsdk.com/getTaskStatus",
        )

    @pytest.mark.parametrize("pages, expected", [(1, None), (9, None), (10, "1-1"), (42, "1-1")])
    def test_page_range(self, pages, expected):
        assert page_range_for(pages) == expected


class TestOcrTaskPoll:
    def test_completed_with_url(self):
        task = OcrTaskPoll(task_id="t")

        assert task.observe("Completed", "https://r/1", max_attempts=10) is OcrTaskState.COMPLETED
        assert task.result_url == "https://r/1"
        assert task.finished

    def test_completed_without_url_fails(self):
        task = OcrTaskPoll(task_id="t")

        task.observe("Completed", None, max_attempts=10)

        assert task.state is OcrTaskState.FAILED
        assert task.error == "OCR task Completed but no resultUrl"

    def test_processing_failed(self):
        task = OcrTaskPoll(task_id="t")

        task.observe("ProcessingFailed", None, max_attempts=10)

        assert task.state is OcrTaskState.FAILED

    def test_times_out_after_max_attempts(self):
        task = OcrTaskPoll(task_id="t")

        assert task.observe("Queued", None, max_attempts=2) is OcrTaskState.POLLING
        assert task.observe("InProgress", None, max_attempts=2) is OcrTaskState.TIMED_OUT
        assert task.error == "OCR timeout; last status = InProgress"

    def test_terminal_status_on_last_attempt_wins(self):
        task = OcrTaskPoll(task_id="t")

        task.observe("Completed", "https://r/1", max_attempts=1)

        assert task.state is OcrTaskState.COMPLETED


class TestOcrClient:
    @pytest.fixture
    def ocr_client(self) -> OcrClient:
        return OcrClient(
            application_id="app-id",
            api_key="secret",
            endpoint="https://cloud.ocrsdk.com",
            poll_interval=0,
            max_poll_attempts=3,
        )

    @pytest.mark.asyncio
    async def test_extract_text_success(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, SUBMIT_BODY)
            mock_client.get.side_effect = [
                _response(200, _status_body("InProgress")),
                _response(200, _status_body("Completed", "https://r/result?a=1&amp;b=2")),
                _response(200, "ＡＢＣ１２３"),
            ]

            result = await ocr_client.extract_text(b"%PDF", page_count=2)

        assert result.ok is True
        assert result.value == "ABC123"
        assert mock_client.get.await_args_list[-1].args == ("https://r/result?a=1&b=2",)
        status_call = mock_client.get.await_args_list[0]
        assert status_call.kwargs["params"] == {"taskId": "task-1"}

    @pytest.mark.asyncio
    async def test_long_document_submits_first_page_only(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, SUBMIT_BODY)

            await ocr_client.submit(b"%PDF", page_range_for(10))

        data = mock_client.post.await_args.kwargs["data"]
        assert data["pageRange"] == "1-1"
        assert data["language"] == "japanese"
        assert data["exportFormat"] == "txt"

    @pytest.mark.asyncio
    async def test_short_document_has_no_page_range(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, SUBMIT_BODY)

            await ocr_client.submit(b"%PDF", page_range_for(9))

        assert "pageRange" not in mock_client.post.await_args.kwargs["data"]

    @pytest.mark.asyncio
    async def test_submit_rejection_includes_status_and_body(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(401, "Unauthorized" + "x" * 500)

            result = await ocr_client.extract_text(b"%PDF", page_count=1)

        assert result.ok is False
        assert isinstance(result.exception, OCRSubmissionError)
        assert result.error.startswith("OCR processImage error 401: Unauthorized")
        assert len(result.error) <= len("OCR processImage error 401: ") + 200
        mock_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submit_without_task_id(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, "<response/>")

            result = await ocr_client.submit(b"%PDF")

        assert result.error == "OCR response has no task id"

    @pytest.mark.asyncio
    async def test_submit_transport_error(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.side_effect = httpx.ConnectError("refused")

            result = await ocr_client.submit(b"%PDF")

        assert isinstance(result.exception, OCRSubmissionError)

    @pytest.mark.asyncio
    async def test_processing_failed(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, SUBMIT_BODY)
            mock_client.get.return_value = _response(200, _status_body("ProcessingFailed"))

            result = await ocr_client.extract_text(b"%PDF", page_count=1)

        assert isinstance(result.exception, OCRProcessingFailedError)
        assert mock_client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_poll_timeout_reports_last_status(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, SUBMIT_BODY)
            mock_client.get.return_value = _response(200, _status_body("InProgress"))

            result = await ocr_client.extract_text(b"%PDF", page_count=1)

        assert isinstance(result.exception, OCRTimeoutError)
        assert result.error == "OCR timeout; last status = InProgress"
        assert mock_client.get.await_count == 3

    @pytest.mark.asyncio
    async def test_completed_without_result_url(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.post.return_value = _response(200, SUBMIT_BODY)
            mock_client.get.return_value = _response(200, _status_body("Completed"))

            result = await ocr_client.extract_text(b"%PDF", page_count=1)

        assert result.ok is False
        assert result.error == "OCR task Completed but no resultUrl"

    @pytest.mark.asyncio
    async def test_result_download_failure(self, ocr_client):
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_client(mock_client_class)
            mock_client.get.return_value = _response(404, "missing")

            result = await ocr_client.fetch_result("https://r/result")

        assert isinstance(result.exception, OCRResultError)
        assert "404" in result.error
