"""OCR service client for the ABBYY Cloud OCR SDK style API."""

from docsync.services.ocr.ocr_client import OcrClient, OcrTaskPoll, OcrTaskState

__all__ = ["OcrClient", "OcrTaskPoll", "OcrTaskState"]
