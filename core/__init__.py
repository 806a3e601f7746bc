# Core module - Error taxonomy and the conversation service
# Every chat turn goes through core.service.ConversationService
#
# The service is not re-exported here: api.client depends on core.errors,
# and core.service depends on api.client.

from .errors import (
    APIError, AuthenticationError, QuotaExceededError, ServerError,
    InvalidResponseError, RequestFailedError, InvalidURLError,
    ErrorCategory, ErrorHandler,
)

__all__ = [
    "APIError", "AuthenticationError", "QuotaExceededError", "ServerError",
    "InvalidResponseError", "RequestFailedError", "InvalidURLError",
    "ErrorCategory", "ErrorHandler",
]
