"""Summary and applicable-date extraction over OCR text."""

from docsync.services.summarization.summarizer import SummarizerClient

__all__ = ["SummarizerClient"]
