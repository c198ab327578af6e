"""cloud_trace error hierarchy and exceptions."""

from __future__ import annotations


class CloudTraceError(Exception):
    """Base exception for all cloud_trace errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(CloudTraceError):
    """Raised when configuration is invalid or missing."""
    pass


class ReportError(CloudTraceError):
    """Raised when a trace could not be delivered to the trace service."""
    pass
