"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept domain and
unexpected errors and return the proxy's JSON error body
``{"error": <title>, "message": <public message>}``.

Design:
- Each AppError subclass maps to exactly one (status, title, message) triple
- Unexpected Exception → generic 500 (safety net)
- Detailed error context is logged, never returned to the client
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from weather_proxy.core.errors import (
    AppError,
    RateLimitExceededError,
    UpstreamHTTPError,
    UpstreamPayloadError,
    UpstreamTransportError,
)
from weather_proxy.core.logging import get_request_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR = (
    500,
    "Internal server error",
    "An unexpected error occurred. Please try again later.",
)

# Ordered: subclasses must precede their bases.
ERROR_RESPONSES: list[tuple[type[AppError], tuple[int, str, str]]] = [
    (
        RateLimitExceededError,
        (429, "Too many requests", "Rate limit exceeded. Please try again later."),
    ),
    (
        UpstreamTransportError,
        (504, "Gateway timeout", "Unable to reach weather service. Please try again later."),
    ),
    (
        UpstreamHTTPError,
        (502, "Bad gateway", "Weather service returned an error. Please try again later."),
    ),
    (UpstreamPayloadError, INTERNAL_ERROR),
]


def resolve_error_response(exc: AppError) -> tuple[int, str, str]:
    """Return ``(status_code, error, message)`` for a domain error."""
    for error_type, response in ERROR_RESPONSES:
        if isinstance(exc, error_type):
            return response
    return INTERNAL_ERROR


def _rate_limit_headers(exc: RateLimitExceededError) -> dict[str, str]:
    details = exc.details or {}
    if "retry_after" not in details:
        return {}
    return {
        "Retry-After": str(details["retry_after"]),
        "X-RateLimit-Limit": str(details.get("limit", "")),
        "X-RateLimit-Remaining": str(details.get("remaining", 0)),
        "X-RateLimit-Reset": str(details.get("reset_at", "")),
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the proxy's JSON format.

    Routes domain errors to HTTP status codes:
    - RateLimitExceededError → 429 Too Many Requests
    - UpstreamTransportError → 504 Gateway Timeout
    - UpstreamHTTPError → 502 Bad Gateway
    - UpstreamPayloadError and anything else → 500 Internal Server Error

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error body.
    """
    status_code, error, message = resolve_error_response(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = _rate_limit_headers(exc) or None

    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack traces or exception text reach the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with the generic 500 body.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    status_code, error, message = INTERNAL_ERROR
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message},
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from weather_proxy.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
