from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from weather_proxy.core.rate_limit import enforce_rate_limit
from weather_proxy.schemas.weather import ErrorResponse
from weather_proxy.services.weather_service import WeatherService

router = APIRouter(tags=["Weather"])


def get_weather_service(request: Request) -> WeatherService:
    """Return the shared WeatherService built by the app factory."""
    return request.app.state.weather_service


@router.get(
    "/weather",
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        429: {"model": ErrorResponse, "description": "Client exceeded its request quota"},
        500: {"model": ErrorResponse, "description": "Unexpected failure or unparseable upstream payload"},
        502: {"model": ErrorResponse, "description": "Upstream returned an error status"},
        504: {"model": ErrorResponse, "description": "Upstream unreachable or timed out"},
    },
)
async def get_weather(
    service: WeatherService = Depends(get_weather_service),
) -> dict[str, Any]:
    """Current and hourly 2 m temperature for the configured location.

    The upstream Open-Meteo payload is passed through unchanged and served
    from a shared cache; at most one upstream call is in flight at a time.

    Returns:
        dict: Upstream forecast with ``latitude``, ``longitude``,
            ``current.temperature_2m`` and ``hourly.temperature_2m``.
    """
    return await service.get_weather_data()
