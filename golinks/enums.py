"""Shared enums for the go-links service.

This module defines all status and marker enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RedirectError", "RedirectOutcome", "RecordingOperation"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RedirectError(StrEnum):
    """Values of the ``error`` query marker on fallback redirects."""

    LINK_NOT_FOUND = "link-not-found"
    LINK_INACTIVE = "link-inactive"
    REDIRECT_FAILED = "redirect-failed"


class RedirectOutcome(StrEnum):
    """Redirect outcome labels for metrics and logging."""

    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    FAILED = "failed"

    @classmethod
    def from_error(cls, error: RedirectError | None) -> "RedirectOutcome":
        if error is None:
            return cls.RESOLVED
        return {
            RedirectError.LINK_NOT_FOUND: cls.NOT_FOUND,
            RedirectError.LINK_INACTIVE: cls.INACTIVE,
        }.get(error, cls.FAILED)


class RecordingOperation(StrEnum):
    """Click recording sub-operations."""

    INCREMENT = "increment"
    INSERT = "insert"
