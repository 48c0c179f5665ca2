import json
from typing import Any, Dict, Optional

from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


def extract_json_object(text: str) -> str:
    """Return the substring between the first '{' and the last '}'.

    Args:
        text: Raw LLM response text

    Returns:
        The candidate JSON object text

    Raises:
        ValueError: If no object delimiters are found
    """
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise ValueError("no JSON object found in LLM response")
    return text[first:last + 1]


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the JSON object embedded in an LLM response.

    Handles code fences and leading/trailing prose by slicing from the first
    '{' to the last '}'.

    Args:
        text: The text containing JSON

    Returns:
        Parsed object, or None if the text holds no decodable JSON object
    """
    if not text:
        return None

    try:
        parsed = json.loads(extract_json_object(text))
    except (ValueError, json.JSONDecodeError) as e:
        LOGGER.warning(f"Failed to parse JSON object from LLM response: {e}")
        return None

    if not isinstance(parsed, dict):
        LOGGER.warning("LLM response JSON is not an object", extra={"type": type(parsed).__name__})
        return None

    return parsed
