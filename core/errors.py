"""
Extraction Errors

Operation-level failures surfaced to callers of the extraction pipeline.
Page-level HTTP failures live in core.resilience.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for failures of a whole extraction."""

    pass


class ConfigurationError(ExtractionError):
    """
    Raised before any network call when the request cannot be executed.

    Covers malformed or non-HTTP(S) endpoints and missing credentials
    for the selected authentication mode.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class FirstPageFailure(ExtractionError):
    """Raised when the first page cannot be fetched; no partial data exists."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        elapsed_ms: float = 0.0,
        retry_count: int = 0,
        rate_limited: bool = False,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.elapsed_ms = elapsed_ms
        self.retry_count = retry_count
        self.rate_limited = rate_limited
        self.cause = cause

    def to_dict(self) -> dict:
        """Diagnostic fields for error responses."""
        return {
            "url": self.url,
            "status_code": self.status_code,
            "elapsed_ms": self.elapsed_ms,
            "retry_count": self.retry_count,
            "rate_limited": self.rate_limited,
            "cause": type(self.cause).__name__ if self.cause else None,
        }


class ExtractionCancelled(ExtractionError):
    """Raised when the caller cancels before the first page was fetched."""

    pass
