"""JSON-over-HTTP transport with bounded retries for LLM endpoints."""

import asyncio
from typing import Any, Dict, Optional

import httpx

from docsync.utils.exceptions import APIClientError, APITimeoutError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

MAX_ERROR_BODY_CHARS = 200
MAX_RETRY_AFTER_SECONDS = 30


def is_retryable_status(status_code: int) -> bool:
    """Rate limiting and server errors are retried; other 4xx are final."""
    return status_code == 429 or status_code >= 500


def retry_after_seconds(response: httpx.Response) -> Optional[float]:
    """Seconds requested by a ``Retry-After`` header, capped at 30."""
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return min(float(value), MAX_RETRY_AFTER_SECONDS)
    except ValueError:
        return None


class BaseLLMClient:
    """POSTs JSON payloads to one LLM endpoint.

    Each attempt that fails with a retryable status, a timeout or a
    connection error waits ``retry_delay * 2 ** attempt`` seconds (or the
    server's ``Retry-After``) before the next one. After ``max_retries``
    attempts the last failure is raised as APITimeoutError or APIClientError.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        """Initialize the transport.

        Args:
            api_key: Bearer token
            base_url: Endpoint URL
            timeout: Request timeout in seconds
            max_retries: Attempts per call (at least one)
            retry_delay: Base delay for exponential backoff
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    async def call_api(
        self,
        endpoint: str = "",
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST ``payload`` and return the decoded JSON answer.

        Args:
            endpoint: Path appended to ``base_url``
            payload: JSON body
            headers: Extra headers

        Returns:
            Parsed JSON response

        Raises:
            APIClientError: On a non-retryable status, or when retries run out
            APITimeoutError: When the last attempt timed out
        """
        url = f"{self.base_url}{endpoint}" if endpoint else self.base_url
        request_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        last_error: Optional[Exception] = None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                delay: Optional[float] = None
                try:
                    response = await client.post(url, headers=request_headers, json=payload)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    body = e.response.text[:MAX_ERROR_BODY_CHARS]
                    LOGGER.warning(
                        "LLM API returned an error status",
                        extra={"url": url, "status_code": status_code, "attempt": attempt + 1},
                    )
                    if not is_retryable_status(status_code):
                        raise APIClientError(f"API Client Error {status_code}: {body}", e) from e
                    last_error = APIClientError(f"API HTTP Error {status_code} after retries", e)
                    delay = retry_after_seconds(e.response)
                except httpx.TimeoutException as e:
                    LOGGER.warning("LLM API timed out", extra={"url": url, "attempt": attempt + 1})
                    last_error = APITimeoutError(f"API Timeout after {self.max_retries} attempts", e)
                except httpx.RequestError as e:
                    LOGGER.warning(
                        "LLM API request failed",
                        extra={"url": url, "attempt": attempt + 1, "error": str(e)},
                    )
                    last_error = APIClientError(f"API Error: {e}", e)

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay if delay is not None else self.retry_delay * (2 ** attempt))

        raise last_error
