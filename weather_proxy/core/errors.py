"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error kind only carries what it knows.
    """

    code: str
    message: str
    hint: str
    http_status: int
    upstream_status: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    client_ip: str
    exception_class: str
    timeout_s: float
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class RateLimitExceededError(AppError):
    """Raised when a client exhausted its request quota for the window."""


class UpstreamError(AppError):
    """Base for failures while fetching from the upstream weather API."""


class UpstreamTransportError(UpstreamError):
    """Raised when the upstream API cannot be reached (network, DNS, timeout)."""


class UpstreamTimeoutError(UpstreamTransportError):
    """Raised when waiting on a shared upstream fetch exceeds the wait budget."""


class UpstreamHTTPError(UpstreamError):
    """Raised when the upstream API answers with a non-success status."""


class UpstreamPayloadError(UpstreamError):
    """Raised when the upstream payload is not the expected JSON structure."""
