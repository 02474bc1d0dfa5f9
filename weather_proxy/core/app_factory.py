from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (shared services, middleware, handlers, routers)
so tests can build isolated apps with fake collaborators.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from weather_proxy.adapters.rate_limit.base import AbstractRateLimiter
from weather_proxy.adapters.weather.base import AbstractWeatherFetcher
from weather_proxy.adapters.weather.factory import create_weather_fetcher
from weather_proxy.api.routes import health_router, weather_router
from weather_proxy.core.config import AppSettings, settings
from weather_proxy.core.exception_handlers import setup_exception_handlers
from weather_proxy.core.logging import configure_logging
from weather_proxy.core.middleware import request_id_middleware
from weather_proxy.core.rate_limit import build_rate_limiter
from weather_proxy.services.weather_service import WeatherService


def create_app(
    *,
    fetcher: AbstractWeatherFetcher | None = None,
    weather_service: WeatherService | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    app_settings: AppSettings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    The weather service and rate limiter are process-wide state: they are
    built here once and shared by reference through ``app.state``.

    Args:
        fetcher: Upstream fetcher; defaults to the configured Open-Meteo client.
        weather_service: Fully built service (takes precedence over ``fetcher``).
        rate_limiter: Limiter; defaults to the configured in-memory limiter.
        app_settings: Rate limit flags read per request; defaults to
            ``settings.app``.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    if weather_service is None:
        weather_service = WeatherService.from_settings(fetcher or create_weather_fetcher())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.weather_service.fetcher.aclose()

    app = FastAPI(
        title="Weather Proxy",
        description=(
            "Caching, rate-limited proxy for the Open-Meteo forecast API. "
            "Serves one shared forecast cached for a fixed TTL and throttles "
            "each client address."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app_settings = app_settings or settings.app

    app.state.weather_service = weather_service
    app.state.app_settings = app_settings
    app.state.rate_limiter = rate_limiter or build_rate_limiter(app_settings)

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(weather_router, prefix="/api")
    app.include_router(health_router)

    return app
