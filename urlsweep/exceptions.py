"""Custom exceptions for urlsweep.

Two families live here:

- scan-level failures (``UrlSweepException`` subclasses with an HTTP status)
  which abort a scan before any row is produced, and
- per-URL fetch failures (``FetchError``) which never leave the pipeline;
  they are turned into the row's ``error`` text.
"""

from typing import Optional, Dict, Any


class UrlSweepException(Exception):
    """Base exception for all urlsweep errors.

    Provides structured error response format with:
    - error_code: Machine-readable error identifier
    - message: Human-readable error description
    - details: Optional additional context
    """

    error_code: str = "URLSWEEP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Return structured error response dict."""
        response = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


# ============ Precondition Errors (4xx) ============


class ValidationError(UrlSweepException):
    """Scan request validation failed."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid {field}: {reason}", details={"field": field, "reason": reason})


class InputFileError(UrlSweepException):
    """Input file missing or unreadable."""

    error_code = "INPUT_FILE_ERROR"
    status_code = 404

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read input file {path}: {reason}", details={"path": path, "reason": reason})


class EmptyInputError(UrlSweepException):
    """Input file contains no URLs."""

    error_code = "EMPTY_INPUT"
    status_code = 400

    def __init__(self, path: str):
        super().__init__(f"No URL found in input file: {path}", details={"path": path})


# ============ Report Errors ============


class ReportWriteError(UrlSweepException):
    """Report could not be persisted."""

    error_code = "REPORT_WRITE_ERROR"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot write report {path}: {reason}", details={"path": path, "reason": reason})


class SourceDeleteError(UrlSweepException):
    """Source file removal after a scan failed."""

    error_code = "SOURCE_DELETE_ERROR"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to delete source file {path}: {reason}", details={"path": path, "reason": reason})


class AggregationError(UrlSweepException):
    """Scheduler delivered a result the aggregator cannot place."""

    error_code = "AGGREGATION_ERROR"


# ============ Per-URL Fetch Errors ============


class FetchError(Exception):
    """A single fetch failed. Always recovered into a row error."""

    kind: str = "network"

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.message = message
        # set when the status line arrived before the failure
        self.status_code = status_code

    def describe(self) -> str:
        return self.message


class InvalidURLError(FetchError):
    kind = "invalid_url"

    def describe(self) -> str:
        return f"invalid URL: {self.message}"


class NetworkError(FetchError):
    kind = "network"

    def __init__(self, url: str, message: str, category: str = "other", status_code: Optional[int] = None):
        super().__init__(url, message, status_code=status_code)
        self.category = category

    def describe(self) -> str:
        return f"network error ({self.category}): {self.message}"


class FetchTimeoutError(FetchError):
    kind = "timeout"

    def __init__(self, url: str, timeout_seconds: float, status_code: Optional[int] = None):
        super().__init__(url, f"timeout after {timeout_seconds:g}s", status_code=status_code)
        self.timeout_seconds = timeout_seconds


# ============ Utility Functions ============


def error_response(exception: UrlSweepException) -> tuple:
    """Create Flask JSON response from exception.

    Returns:
        Tuple of (response_dict, status_code) ready for jsonify
    """
    return exception.to_dict(), exception.status_code
