"""Upstream weather adapter layer."""

from weather_proxy.adapters.weather.base import AbstractWeatherFetcher
from weather_proxy.adapters.weather.factory import create_weather_fetcher
from weather_proxy.adapters.weather.open_meteo import OpenMeteoFetcher

__all__ = [
    "AbstractWeatherFetcher",
    "OpenMeteoFetcher",
    "create_weather_fetcher",
]
