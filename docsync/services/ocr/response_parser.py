"""Attribute extraction from OCR service response bodies.

The service answers with small XML documents such as::

    <response><task id="5a0f..." status="Queued" .../></response>

Only a handful of attributes are needed, so they are matched directly
instead of parsing the XML.
"""

import html
import re
from typing import Optional

_TASK_ID = re.compile(r'task id="([^"]+)"')
_STATUS = re.compile(r'status="([^"]+)"')
_RESULT_URL = re.compile(r'resultUrl="([^"]+)"')

STATUS_COMPLETED = "Completed"
STATUS_PROCESSING_FAILED = "ProcessingFailed"
STATUS_UNKNOWN = "Unknown"


def parse_task_id(body: str) -> Optional[str]:
    """Task id from a submission response, or None."""
    match = _TASK_ID.search(body)
    return match.group(1) if match else None


def parse_task_status(body: str) -> str:
    """Task status from a status response; "Unknown" when absent."""
    match = _STATUS.search(body)
    return match.group(1) if match else STATUS_UNKNOWN


def parse_result_url(body: str) -> Optional[str]:
    """Result download URL from a completed status response, XML-unescaped."""
    match = _RESULT_URL.search(body)
    return html.unescape(match.group(1)) if match else None
