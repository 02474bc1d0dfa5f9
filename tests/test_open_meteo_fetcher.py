"""Tests for the Open-Meteo fetcher using httpx.MockTransport."""

import json
from typing import Any, Callable

import httpx
import pytest

from weather_proxy.adapters.weather.factory import create_weather_fetcher
from weather_proxy.adapters.weather.open_meteo import OpenMeteoFetcher
from weather_proxy.core.config import DEFAULT_UPSTREAM_URL, WeatherSettings
from weather_proxy.core.errors import (
    UpstreamHTTPError,
    UpstreamPayloadError,
    UpstreamTransportError,
)

UPSTREAM_URL = "https://api.open-meteo.com/v1/forecast?latitude=52.52&longitude=13.41&current=temperature_2m&hourly=temperature_2m&forecast_days=1"


def _fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> OpenMeteoFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenMeteoFetcher(UPSTREAM_URL, client=client)


@pytest.mark.asyncio
async def test_returns_payload_verbatim(weather_payload: dict[str, Any]) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=weather_payload)

    data = await _fetcher(handler).fetch()

    assert data == weather_payload
    assert data["generationtime_ms"] == 0.03
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert str(seen[0].url) == UPSTREAM_URL


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc_factory",
    [
        lambda request: httpx.ConnectTimeout("connect timed out", request=request),
        lambda request: httpx.ReadTimeout("read timed out", request=request),
        lambda request: httpx.ConnectError("name resolution failed", request=request),
    ],
)
async def test_network_failures_raise_transport_error(exc_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_factory(request)

    with pytest.raises(UpstreamTransportError) as exc_info:
        await _fetcher(handler).fetch()

    assert exc_info.value.code in {"upstream_timeout", "upstream_unreachable"}
    assert exc_info.value.details["exception_class"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 429, 500, 503])
async def test_error_status_raises_http_error(status_code: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": True, "reason": "nope"})

    with pytest.raises(UpstreamHTTPError) as exc_info:
        await _fetcher(handler).fetch()

    assert exc_info.value.details == {"upstream_status": status_code}


@pytest.mark.asyncio
async def test_invalid_json_raises_payload_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>not json</html>")

    with pytest.raises(UpstreamPayloadError) as exc_info:
        await _fetcher(handler).fetch()

    assert exc_info.value.code == "upstream_invalid_json"


@pytest.mark.asyncio
async def test_non_object_json_raises_payload_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps([1, 2, 3]).encode())

    with pytest.raises(UpstreamPayloadError):
        await _fetcher(handler).fetch()


@pytest.mark.asyncio
async def test_missing_hourly_series_raises_payload_error(weather_payload: dict[str, Any]) -> None:
    del weather_payload["hourly"]["temperature_2m"]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=weather_payload)

    with pytest.raises(UpstreamPayloadError) as exc_info:
        await _fetcher(handler).fetch()

    assert exc_info.value.code == "upstream_invalid_payload"


@pytest.mark.asyncio
async def test_injected_client_is_not_closed_by_fetcher() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204)))
    fetcher = OpenMeteoFetcher(UPSTREAM_URL, client=client)

    await fetcher.aclose()

    assert client.is_closed is False
    await client.aclose()


@pytest.mark.asyncio
async def test_factory_uses_configured_url_and_timeout() -> None:
    fetcher = create_weather_fetcher(WeatherSettings(upstream_url="https://example.test/forecast", timeout_seconds=2.5))

    assert isinstance(fetcher, OpenMeteoFetcher)
    assert fetcher.url == "https://example.test/forecast"
    assert fetcher.client.timeout.read == 2.5
    await fetcher.aclose()
    assert fetcher.client.is_closed is True


def test_default_upstream_is_berlin_forecast() -> None:
    assert "api.open-meteo.com" in DEFAULT_UPSTREAM_URL
    assert "latitude=52.52" in DEFAULT_UPSTREAM_URL
    assert "longitude=13.41" in DEFAULT_UPSTREAM_URL
    assert "current=temperature_2m" in DEFAULT_UPSTREAM_URL
    assert "hourly=temperature_2m" in DEFAULT_UPSTREAM_URL
