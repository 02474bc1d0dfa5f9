"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests, so the
environment below is in place before ``weather_proxy.core.config.settings``
is instantiated.
"""

import os
from typing import Any

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "60")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "60")
os.environ.setdefault("WEATHER_CACHE_TTL_SECONDS", "300")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from weather_proxy.adapters.weather.base import AbstractWeatherFetcher  # noqa: E402


class FakeWeatherFetcher(AbstractWeatherFetcher):
    """In-memory fetcher that counts calls and can be told to fail."""

    def __init__(self, payload: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls = 0
        self.closed = False

    async def fetch(self) -> dict[str, Any]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.payload

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def weather_payload() -> dict[str, Any]:
    """Trimmed Open-Meteo forecast response for Berlin."""
    return {
        "latitude": 52.52,
        "longitude": 13.419998,
        "generationtime_ms": 0.03,
        "utc_offset_seconds": 0,
        "timezone": "GMT",
        "elevation": 38.0,
        "current_units": {"time": "iso8601", "temperature_2m": "°C"},
        "current": {"time": "2026-10-18T12:00", "interval": 900, "temperature_2m": 15.5},
        "hourly_units": {"time": "iso8601", "temperature_2m": "°C"},
        "hourly": {
            "time": ["2026-10-18T00:00", "2026-10-18T01:00", "2026-10-18T02:00"],
            "temperature_2m": [14.0, 15.0, 15.5],
        },
    }


@pytest.fixture
def fake_fetcher(weather_payload: dict[str, Any]) -> FakeWeatherFetcher:
    return FakeWeatherFetcher(payload=weather_payload)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
