"""Custom exception classes for the application."""


class DocSyncError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(DocSyncError):
    """Raised when configuration is invalid or missing."""

    pass


class APIClientError(DocSyncError):
    """Raised when an external API call fails."""

    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""

    pass


class DocumentFetchError(DocSyncError):
    """Raised when a source document cannot be downloaded."""

    pass


class OCRServiceError(DocSyncError):
    """Base exception for OCR service errors."""

    pass


class OCRSubmissionError(OCRServiceError):
    """Raised when the OCR service rejects a document submission."""

    pass


class OCRProcessingFailedError(OCRServiceError):
    """Raised when the OCR task reaches a failed terminal status."""

    pass


class OCRTimeoutError(OCRServiceError):
    """Raised when the OCR task does not complete within the poll budget."""

    pass


class OCRResultError(OCRServiceError):
    """Raised when the OCR result text cannot be downloaded."""

    pass


class SummarizationError(DocSyncError):
    """Raised when the LLM summarization call fails."""

    pass


class PersistenceError(DocSyncError):
    """Raised when a normalized document cannot be written."""

    pass


class DuplicateDocumentError(PersistenceError):
    """Raised when a normalized document with the same URL already exists."""

    pass


class CronAuthError(DocSyncError):
    """Raised when a cron request cannot be authenticated."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code
