"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Injected state: the limiter and its ``AppSettings`` are built once by the
  app factory and stored on ``app.state``; nothing here is module-global.
- Client identity is the source address. Requests whose address cannot be
  determined share one ``unknown`` bucket.
"""

from __future__ import annotations

import logging

from fastapi import Request

from weather_proxy.adapters.rate_limit.base import AbstractRateLimiter
from weather_proxy.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from weather_proxy.core.config import AppSettings, settings
from weather_proxy.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def build_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Create the process-wide limiter from configuration."""

    cfg = app_settings or settings.app
    return InMemoryFixedWindowRateLimiter(
        limit=cfg.rate_limit_requests,
        window_seconds=cfg.rate_limit_window_seconds,
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter attached to the running application."""

    return request.app.state.rate_limiter


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.app_settings


def resolve_client_ip(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Determine the client address used as rate limit identity.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Prefer the first ``X-Forwarded-For`` hop. Only
            safe when a trusted reverse proxy sets the header.

    Returns:
        str: Client address, or ``"unknown"`` when none is available.
    """

    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing per-client rate limits.

    Consumes one unit from the client's budget before any cache or upstream
    work happens.

    Raises:
        RateLimitExceededError: When the client exhausted its quota (→ 429).
    """

    cfg = get_app_settings(request)
    if not cfg.rate_limit_enabled:
        return

    limiter = get_rate_limiter(request)
    client_ip = resolve_client_ip(
        request, trust_forwarded_for=cfg.trust_forwarded_for
    )

    result = limiter.consume(f"ip:{client_ip}")
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "client_ip": client_ip,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_ip": client_ip,
            "limit": result.limit,
            "remaining": result.remaining,
            "window_s": cfg.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    details = {"client_ip": client_ip}
    if cfg.rate_limit_include_headers:
        details.update(
            retry_after=retry_after,
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )

    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message=f"Rate limit exceeded for {client_ip}",
        details=details,
    )
