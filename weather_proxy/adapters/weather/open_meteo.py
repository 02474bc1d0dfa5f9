"""Open-Meteo forecast client built on httpx."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from weather_proxy.adapters.weather.base import AbstractWeatherFetcher
from weather_proxy.core.errors import (
    UpstreamHTTPError,
    UpstreamPayloadError,
    UpstreamTransportError,
)
from weather_proxy.schemas.weather import WeatherPayload

logger = logging.getLogger(__name__)


class OpenMeteoFetcher(AbstractWeatherFetcher):
    """Fetches one fixed forecast URL and classifies every failure.

    The payload is validated against ``WeatherPayload`` but returned exactly
    as the upstream sent it.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            url: Fully qualified forecast URL (coordinates included).
            timeout_seconds: Network timeout for the request.
            client: Optional preconfigured client (tests inject a MockTransport).
        """
        self.url = url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    async def fetch(self) -> dict[str, Any]:
        start = time.perf_counter()
        try:
            response = await self.client.get(self.url)
        except httpx.TimeoutException as exc:
            raise UpstreamTransportError(
                code="upstream_timeout",
                message=f"Timed out calling weather upstream: {exc}",
                details={"exception_class": type(exc).__name__},
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamTransportError(
                code="upstream_unreachable",
                message=f"Network error calling weather upstream: {exc}",
                details={"exception_class": type(exc).__name__},
            ) from exc

        logger.debug(
            "upstream.response",
            extra={
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

        if response.is_error:
            raise UpstreamHTTPError(
                code="upstream_http_error",
                message=f"Weather upstream returned HTTP {response.status_code}",
                details={"upstream_status": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamPayloadError(
                code="upstream_invalid_json",
                message=f"Weather upstream returned invalid JSON: {exc}",
            ) from exc

        if not isinstance(data, dict):
            raise UpstreamPayloadError(
                code="upstream_invalid_payload",
                message=f"Expected a JSON object from weather upstream, got {type(data).__name__}",
            )

        try:
            WeatherPayload.model_validate(data)
        except ValidationError as exc:
            raise UpstreamPayloadError(
                code="upstream_invalid_payload",
                message=f"Weather upstream payload is missing required fields: {exc.error_count()} error(s)",
                details={"context": {"errors": exc.errors(include_url=False)}},
            ) from exc

        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
