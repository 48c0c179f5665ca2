"""Download source documents and estimate their page count."""

import re
from dataclasses import dataclass
from typing import Optional

import httpx

from docsync.models.result import Result
from docsync.utils.exceptions import DocumentFetchError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Matches "/Type /Page" and "/Type/Page" but not "/Type /Pages"
_PAGE_MARKER = re.compile(rb"/Type\s*/Page\b")


@dataclass(frozen=True)
class FetchedDocument:
    """Raw bytes of a downloaded document."""

    content: bytes
    content_type: Optional[str] = None


def estimate_page_count(content: bytes) -> int:
    """Cheap page count estimate from PDF page objects.

    Args:
        content: Raw document bytes

    Returns:
        Number of page markers found, or 1 when there are none
    """
    if not content:
        return 1
    count = len(_PAGE_MARKER.findall(content))
    return count if count > 0 else 1


class DocumentFetcher:
    """Fetches document bytes over HTTP."""

    def __init__(self, timeout: int = 60):
        self.timeout = timeout

    async def fetch(self, url: str) -> Result[FetchedDocument]:
        """Download a document.

        Args:
            url: File URL of the candidate

        Returns:
            Result carrying the document bytes; non-2xx answers and transport
            errors are failures
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            LOGGER.warning("Document download failed", extra={"url": url, "error": str(e)})
            return Result.from_exception(DocumentFetchError(f"fetch PDF failed: {e}", e))

        if not 200 <= response.status_code < 300:
            return Result.from_exception(
                DocumentFetchError(
                    f"fetch PDF failed: {response.status_code} {response.reason_phrase}".rstrip()
                )
            )

        LOGGER.debug(
            "Downloaded document",
            extra={"url": url, "size_bytes": len(response.content)},
        )
        return Result.success(
            FetchedDocument(
                content=response.content,
                content_type=response.headers.get("content-type"),
            )
        )
