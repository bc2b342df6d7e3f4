"""Domain exceptions and error handling."""

import time
from typing import Any


class ChatClientError(Exception):
    """Base exception for all chat client errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        is_retryable: bool = False,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.is_retryable = is_retryable
        self.retry_after = retry_after
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "is_retryable": self.is_retryable,
            "retry_after": self.retry_after,
            "timestamp": self.timestamp,
        }


class ConfigurationError(ChatClientError):
    """Raised when there's a configuration issue."""

    pass


class ConfigurationValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, config_key: str | None = None, **kwargs):
        super().__init__(message, is_retryable=False, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class AgentError(ChatClientError):
    """Base exception for remote agent errors."""

    pass


class AgentInitializationError(AgentError):
    """Raised when an agent handle cannot be constructed."""

    pass


class StreamError(AgentError):
    """Base exception for streaming errors."""

    pass


class StreamUnsupportedError(StreamError):
    """Raised when the endpoint does not offer a streaming body."""

    def __init__(self, message: str = "No response body", **kwargs):
        super().__init__(message, **kwargs)


class StreamTransportError(StreamError):
    """Raised when a stream breaks while it is being read."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, is_retryable=True, **kwargs)


class FallbackError(AgentError):
    """Raised when the non-streaming fallback call fails."""

    pass


class APIError(ChatClientError):
    """Base exception for API-related errors."""

    def __init__(self, message: str, status_code: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        if status_code:
            self.details["status_code"] = status_code


class AuthenticationError(APIError):
    """Raised when authentication fails."""

    pass


class AuthorizationError(APIError):
    """Raised when authorization fails."""

    pass


class RateLimitError(APIError):
    """Raised when rate limit is exceeded."""

    def __init__(self, message: str, retry_after: float | None = None, **kwargs):
        super().__init__(message, is_retryable=True, retry_after=retry_after, **kwargs)


class ConnectionError(ChatClientError):
    """Raised when connection fails."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, is_retryable=True, **kwargs)


class TimeoutError(ChatClientError):
    """Raised when operation times out."""

    def __init__(self, message: str, timeout_duration: float | None = None, **kwargs):
        super().__init__(message, is_retryable=True, **kwargs)
        self.timeout_duration = timeout_duration
        if timeout_duration:
            self.details["timeout_duration"] = timeout_duration


class RepositoryError(ChatClientError):
    """Raised when the configuration store cannot be written."""

    pass


class StopChunkDelivery(Exception):
    """Raised by a chunk callback to stop receiving further chunks."""

    pass
