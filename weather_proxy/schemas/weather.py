"""Pydantic schemas for the proxied weather payload and error bodies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CurrentConditions(BaseModel):
    """``current`` block of the Open-Meteo forecast."""

    model_config = ConfigDict(extra="allow")

    temperature_2m: float | None = Field(
        ..., description="Air temperature 2 m above ground at the current time."
    )


class HourlySeries(BaseModel):
    """``hourly`` block of the Open-Meteo forecast."""

    model_config = ConfigDict(extra="allow")

    temperature_2m: list[float | None] = Field(
        ..., description="Hourly air temperature 2 m above ground."
    )


class WeatherPayload(BaseModel):
    """Minimal shape the proxy requires from the upstream forecast.

    Used for validation only: clients receive the upstream JSON verbatim,
    including every field not declared here.
    """

    model_config = ConfigDict(extra="allow")

    latitude: float = Field(..., description="Latitude of the forecast grid cell.")
    longitude: float = Field(..., description="Longitude of the forecast grid cell.")
    current: CurrentConditions
    hourly: HourlySeries


class ErrorResponse(BaseModel):
    """Error body returned for 429/5xx responses."""

    error: str = Field(..., description="Short error title, e.g. 'Bad gateway'.")
    message: str = Field(..., description="Human-readable explanation for clients.")
