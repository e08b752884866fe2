"""
Error Handling Module

Defines domain exceptions and error categories for the streaming pipeline.
Domain exceptions are pure and have no external dependencies.
Application exceptions carry user-facing messages for API responses.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    INVALID_URL = "invalid_url"
    FETCH_FAILED = "fetch_failed"
    PROBE_FAILED = "probe_failed"
    ENCODE_FAILED = "encode_failed"
    JOB_NOT_FOUND = "job_not_found"
    JOB_NOT_CANCELLABLE = "job_not_cancellable"
    INVALID_REQUEST = "invalid_request"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.INVALID_URL: {
        "title": "Invalid Source URL",
        "message": "The source reference is not a valid http(s) URL.",
        "action": "Check the link and make sure it points directly to a video file.",
    },
    ErrorCategory.FETCH_FAILED: {
        "title": "Download Failed",
        "message": "The source file could not be retrieved from the remote server.",
        "action": "Make sure the file is publicly reachable and try again.",
    },
    ErrorCategory.PROBE_FAILED: {
        "title": "Unreadable Media",
        "message": "The downloaded file could not be inspected. It may be corrupt or not a video.",
        "action": "Try a different file.",
    },
    ErrorCategory.ENCODE_FAILED: {
        "title": "Conversion Failed",
        "message": "The video could not be converted to a streamable format.",
        "action": "Please try again. If the problem persists, try a different file.",
    },
    ErrorCategory.JOB_NOT_FOUND: {
        "title": "Job Not Found",
        "message": "The requested stream job could not be found or has expired.",
        "action": "Please start a new stream.",
    },
    ErrorCategory.JOB_NOT_CANCELLABLE: {
        "title": "Job Already Finished",
        "message": "The stream job has already finished and can no longer be cancelled.",
        "action": "Start a new stream if you need to convert the file again.",
    },
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request is missing required information or contains invalid data.",
        "action": "Please check your input and try again.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while processing your request.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions can optionally wrap original errors for context.
    """

    category = ErrorCategory.SYSTEM_ERROR

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class InvalidInputError(DomainError):
    """Raised when the source reference is malformed."""

    category = ErrorCategory.INVALID_URL


class FetchError(DomainError):
    """
    Raised when the remote file cannot be analyzed or retrieved.

    Covers network/transfer errors and non-2xx responses.
    """

    category = ErrorCategory.FETCH_FAILED


class ProbeError(DomainError):
    """Raised when the media file cannot be inspected."""

    category = ErrorCategory.PROBE_FAILED


class EncodeError(DomainError):
    """
    Raised when a transcode task fails.

    Attributes:
        task_name: Name of the failing task (``video`` or ``audio_<slug>``)
    """

    category = ErrorCategory.ENCODE_FAILED

    def __init__(self, message: str, task_name: str = "", original_error: Exception = None):
        super().__init__(message, original_error)
        self.task_name = task_name


class JobCancelledError(DomainError):
    """
    Raised when a cancellation is observed at a checkpoint.

    Cancellation is user-initiated and is not a failure.
    """

    pass


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with user-facing error messages and HTTP responses.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response."""
        return {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }


def user_message_for(category: ErrorCategory) -> str:
    """Return the ``title: message`` string shown to users for a category."""
    error_info = ERROR_MESSAGES.get(category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR])
    return f"{error_info['title']}: {error_info['message']}"


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 400,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details for logging
        context: Additional context information
        status_code: HTTP status code

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code
