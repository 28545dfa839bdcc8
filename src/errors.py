"""
Exception types raised by the managed instance group adapter.
"""

from typing import Optional


class AdapterError(RuntimeError):
    """Base class for all adapter errors."""


class ValidationError(AdapterError, ValueError):
    """Configuration failed schema validation."""


class ConfigurationError(AdapterError):
    """Ambient provider settings (project, zone, region) are missing."""


class InvalidIdentifierError(AdapterError, ValueError):
    """An import or state identifier could not be parsed."""


class ApiError(AdapterError):
    """The Compute Engine API rejected a request."""

    RETRYABLE_STATUS_CODES = {409, 429, 500, 502, 503, 504}

    def __init__(self, status_code: Optional[int], message: str, activity: str = ""):
        self.status_code = status_code
        self.message = message
        self.activity = activity
        prefix = f"{activity}: " if activity else ""
        if status_code is None:
            super().__init__(f"{prefix}{message}")
        else:
            super().__init__(f"{prefix}HTTP {status_code}: {message}")

    @property
    def retryable(self) -> bool:
        """True for network failures and server-side or throttling errors."""
        if self.status_code is None:
            return True
        return self.status_code in self.RETRYABLE_STATUS_CODES


class NotFoundError(ApiError):
    """The requested resource does not exist (HTTP 404)."""


class OperationError(AdapterError):
    """A long-running operation finished with an error."""


class OperationTimeoutError(OperationError):
    """A long-running operation did not finish within its timeout."""


class NotShrinkingError(OperationError):
    """The instance group stopped draining while being deleted."""
