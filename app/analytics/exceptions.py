"""
Analytics Exceptions
Typed errors raised by the analytics computation core.
"""

from typing import Any, Optional


class AnalyticsError(Exception):
    """Base exception for analytics computations."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InsufficientDataError(AnalyticsError):
    """Raised when a computation has fewer data points than it needs."""

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
    ):
        self.required = required
        self.available = available
        details = {}
        if required is not None:
            details["required"] = required
        if available is not None:
            details["available"] = available
        super().__init__(message, details)


class InvalidRangeError(AnalyticsError):
    """Raised when a date range starts after it ends."""


class ConfigurationError(AnalyticsError):
    """Raised for unknown parameter values (model type, sensitivity, grouping)."""
