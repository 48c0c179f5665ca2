import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Key form of a document label: every whitespace character removed.

    "健康 保険証" and "健康　保険証" (full-width space) both map to "健康保険証".
    """
    return _WHITESPACE.sub("", label).strip()


def normalize_ocr_text(text: str) -> str:
    """Apply NFKC so full-width and half-width variants compare equal."""
    return unicodedata.normalize("NFKC", text)