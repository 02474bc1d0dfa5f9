"""HTTP middleware for request correlation and access logging.

Every request/response pair carries a correlation id (taken from the
configured request-id header or generated), which is stored in contextvars
so cache, fetcher and rate-limit logs emitted while serving the request are
tagged with it.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from weather_proxy.core.config import settings
from weather_proxy.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a request id, time the request and log its outcome.

    Side Effects:
        - Sets request_id in contextvars for the duration of the request
        - Adds the request-id header and X-Request-Duration-ms to the response
        - Emits one ``http.request`` log line per request
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": request.client.host if request.client else None,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
