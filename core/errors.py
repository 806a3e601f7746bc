"""
Error Handling Module
---------------------
Typed errors for chat completion calls.
Provider errors propagate to the caller unchanged; only the caller
decides how to present them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Dict, List, Optional
import logging


class ErrorCategory(Enum):
    """Categories of API errors."""
    AUTHENTICATION = auto()     # Missing or rejected API key
    QUOTA = auto()              # Rate limit or quota exceeded
    SERVER = auto()             # Provider returned 5xx
    INVALID_RESPONSE = auto()   # Body could not be parsed
    REQUEST_FAILED = auto()     # Anything else that went wrong on the wire
    INVALID_URL = auto()        # Endpoint is malformed


class APIError(Exception):
    """Base class for chat completion failures."""

    category: ErrorCategory = ErrorCategory.REQUEST_FAILED
    recoverable: bool = True

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.category.name}: {self.message})"


class AuthenticationError(APIError):
    category = ErrorCategory.AUTHENTICATION
    recoverable = False

    def __init__(self, message: str = "Authentication failed. Please check your API key."):
        super().__init__(message)


class QuotaExceededError(APIError):
    category = ErrorCategory.QUOTA

    def __init__(self, message: str = "API quota exceeded. Please check your billing or try again later."):
        super().__init__(message)


class ServerError(APIError):
    category = ErrorCategory.SERVER

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Server error ({status_code}). Please try again later.")


class InvalidResponseError(APIError):
    category = ErrorCategory.INVALID_RESPONSE
    recoverable = False

    def __init__(self, message: str = "Invalid response from the API."):
        super().__init__(message)


class RequestFailedError(APIError):
    category = ErrorCategory.REQUEST_FAILED

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Request failed: {detail}")


class InvalidURLError(APIError):
    category = ErrorCategory.INVALID_URL
    recoverable = False

    def __init__(self, url: str = ""):
        self.url = url
        super().__init__(f"Invalid API endpoint: {url}" if url else "Invalid API endpoint.")


@dataclass
class ErrorRecord:
    """An error seen by the ErrorHandler."""
    category: ErrorCategory
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


class ErrorHandler:
    """
    Central error handler with logging and user-facing messages.
    """

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("freewrite.errors")
        self._error_history: List[ErrorRecord] = []
        self._max_history = max_history

    def handle(self, error: APIError) -> str:
        """
        Handle an error and return a user-friendly message.
        """
        self._log_error(error)

        self._error_history.append(ErrorRecord(category=error.category, message=error.message))
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)

        return self._get_user_message(error)

    def _log_error(self, error: APIError) -> None:
        """Log error with appropriate level."""
        level_map = {
            ErrorCategory.AUTHENTICATION: logging.WARNING,
            ErrorCategory.QUOTA: logging.WARNING,
            ErrorCategory.SERVER: logging.ERROR,
            ErrorCategory.INVALID_RESPONSE: logging.ERROR,
            ErrorCategory.REQUEST_FAILED: logging.ERROR,
            ErrorCategory.INVALID_URL: logging.CRITICAL,
        }

        level = level_map.get(error.category, logging.ERROR)
        self._logger.log(level, f"{error.category.name}: {error.message}")

    def _get_user_message(self, error: APIError) -> str:
        """Generate user-friendly error message."""
        messages: Dict[ErrorCategory, Optional[str]] = {
            ErrorCategory.AUTHENTICATION: "Your API key is missing or was rejected. Add a valid key in settings.",
            ErrorCategory.QUOTA: "You've hit the provider's rate limit or quota. Please wait and try again.",
            ErrorCategory.SERVER: None,
            ErrorCategory.INVALID_RESPONSE: "The provider sent a response I couldn't read. Please try again.",
            ErrorCategory.REQUEST_FAILED: None,
            ErrorCategory.INVALID_URL: "The provider endpoint is misconfigured.",
        }

        return messages.get(error.category) or error.message

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        stats: Dict[str, int] = {}
        for record in self._error_history:
            key = record.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        """Clear error history."""
        self._error_history.clear()
