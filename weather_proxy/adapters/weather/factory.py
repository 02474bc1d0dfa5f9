"""Factory for the upstream weather fetcher."""

from weather_proxy.adapters.weather.base import AbstractWeatherFetcher
from weather_proxy.adapters.weather.open_meteo import OpenMeteoFetcher
from weather_proxy.core.config import WeatherSettings, settings


def create_weather_fetcher(weather_settings: WeatherSettings | None = None) -> AbstractWeatherFetcher:
    """Instantiate the fetcher configured for this deployment.

    Args:
        weather_settings: Optional settings override; defaults to global settings.

    Returns:
        AbstractWeatherFetcher: Open-Meteo client bound to the upstream URL.
    """
    cfg = weather_settings or settings.weather
    return OpenMeteoFetcher(cfg.upstream_url, timeout_seconds=cfg.timeout_seconds)
