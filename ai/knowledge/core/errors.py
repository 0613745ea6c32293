"""Error taxonomy for the ingestion and retrieval pipeline."""

from typing import Optional


class KnowledgeBaseError(Exception):
    """Base exception for all pipeline errors."""

    code = "KNOWLEDGE_BASE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[dict[str, object]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, **self.details}


class ValidationError(KnowledgeBaseError):
    """Raised when input is rejected before any side effect."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(KnowledgeBaseError):
    """Raised when a job, file or stored blob does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class TransientFetchError(KnowledgeBaseError):
    """Per-URL failure; recorded on the job and never fatal to it."""

    code = "FETCH_ERROR"
    status_code = 502


class FetchError(TransientFetchError):
    """Raised by the page fetcher on timeout, network failure or status >= 400."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(
            message,
            details={"url": url, "status_code": status_code},
        )
        self.url = url
        self.http_status = status_code


class ExtractionError(KnowledgeBaseError):
    """Raised when a file cannot be read or parsed."""

    code = "EXTRACTION_ERROR"
    status_code = 422


class PersistenceError(KnowledgeBaseError):
    """Raised when the content or blob store fails to write."""

    code = "PERSISTENCE_ERROR"
    status_code = 500
