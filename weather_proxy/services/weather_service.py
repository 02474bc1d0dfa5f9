"""Weather service: serves the upstream forecast through the shared cache.

All callers share one cache entry keyed by ``WEATHER_CACHE_KEY``. A miss
triggers exactly one upstream fetch no matter how many requests arrive while
it is running; the result is cached for ``WEATHER_CACHE_TTL_SECONDS``.
"""

from __future__ import annotations

import logging
from typing import Any

from weather_proxy.adapters.weather.base import AbstractWeatherFetcher
from weather_proxy.core.config import WeatherSettings, settings
from weather_proxy.core.errors import UpstreamError, UpstreamTimeoutError
from weather_proxy.utils.singleflight_cache import SingleFlightTTLCache

logger = logging.getLogger(__name__)

WeatherData = dict[str, Any]


class WeatherService:
    """Cache-fronted access to the upstream weather payload.

    Constructed once per application and shared by every request.
    """

    def __init__(
        self,
        fetcher: AbstractWeatherFetcher,
        cache: SingleFlightTTLCache[WeatherData] | None = None,
        *,
        cache_key: str | None = None,
        wait_timeout_seconds: float | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache or SingleFlightTTLCache(settings.weather.cache_ttl_seconds)
        self.cache_key = cache_key or settings.weather.cache_key
        self.wait_timeout_seconds = wait_timeout_seconds

    @classmethod
    def from_settings(
        cls,
        fetcher: AbstractWeatherFetcher,
        weather_settings: WeatherSettings | None = None,
    ) -> "WeatherService":
        cfg = weather_settings or settings.weather
        return cls(
            fetcher,
            SingleFlightTTLCache(cfg.cache_ttl_seconds),
            cache_key=cfg.cache_key,
            wait_timeout_seconds=cfg.wait_timeout_seconds,
        )

    async def get_weather_data(self) -> WeatherData:
        """Return the cached forecast, fetching it when missing or stale.

        Raises:
            UpstreamTransportError: Upstream unreachable, or the wait timed out.
            UpstreamHTTPError: Upstream answered with an error status.
            UpstreamPayloadError: Upstream payload could not be parsed.
        """
        try:
            return await self.cache.get_or_fetch(
                self.cache_key,
                self._fetch_and_log,
                timeout=self.wait_timeout_seconds,
            )
        except TimeoutError as exc:
            logger.error(
                "weather_fetch.wait_timeout",
                extra={"cache_key": self.cache_key, "timeout_s": self.wait_timeout_seconds},
            )
            raise UpstreamTimeoutError(
                code="upstream_wait_timeout",
                message=f"Timed out after {self.wait_timeout_seconds}s waiting for weather data",
                details={"timeout_s": self.wait_timeout_seconds},
            ) from exc

    async def _fetch_and_log(self) -> WeatherData:
        logger.debug("weather_cache.miss", extra={"cache_key": self.cache_key})
        try:
            data = await self.fetcher.fetch()
        except UpstreamError as exc:
            logger.error(
                "weather_fetch.failed",
                extra={
                    "error": exc.message,
                    "error_code": exc.code,
                    "exception_class": type(exc).__name__,
                },
            )
            raise
        except Exception as exc:
            logger.error(
                "weather_fetch.failed",
                extra={"error": str(exc), "exception_class": type(exc).__name__},
            )
            raise

        logger.info(
            "weather_fetch.succeeded",
            extra={"cache_key": self.cache_key, "ttl_s": self.cache.ttl_seconds},
        )
        return data
