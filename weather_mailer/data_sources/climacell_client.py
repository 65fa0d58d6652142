"""Helpers for fetching weather and air-quality data from the ClimaCell v3 API."""
from __future__ import annotations

import datetime as dt
import threading
from typing import Any, List, Optional, Sequence

import requests
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from weather_mailer.data_sources.query import build_query
from weather_mailer.domain import AIR_QUALITY_INDICATORS, WEATHER_FIELDS
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="climacell_client")

# Both timelines fetch from scheduler worker threads; requests does not
# promise Session is thread-safe, so calls on it are serialized.
session = requests.Session()
_session_lock = threading.Lock()

CLIMACELL_BASE_URL = "https://api.climacell.co/v3"
REALTIME_PATH = "/weather/realtime"
HOURLY_FORECAST_PATH = "/weather/forecast/hourly"


class ApiResponseError(ValueError):
    """Raised when the API answers with something other than the expected JSON shape."""


class _Payload(BaseModel):
    """ClimaCell responses carry lat/lon and other extras we do not use."""
    model_config = ConfigDict(extra="ignore")


class Measurement(_Payload):
    """A `{value, units}` pair as returned for every requested field."""
    value: Optional[float] = None
    units: Optional[str] = None


class WeatherCode(_Payload):
    value: str


class ObservationTime(_Payload):
    value: dt.datetime


class WeatherReading(_Payload):
    """One hourly record of the forecast endpoint."""
    observation_time: ObservationTime
    weather_code: WeatherCode
    temp: Measurement
    humidity: Measurement
    wind_speed: Measurement


class AirQualityReading(_Payload):
    """Realtime air-quality record, one Measurement per indicator."""
    observation_time: Optional[ObservationTime] = None
    pm10: Measurement
    pm25: Measurement
    o3: Measurement
    no2: Measurement
    co: Measurement
    so2: Measurement

    def value_of(self, indicator: str) -> Optional[float]:
        """Current value of `indicator` (one of AIR_QUALITY_INDICATORS)."""
        return getattr(self, indicator).value


_WEATHER_READINGS = TypeAdapter(List[WeatherReading])


def _get_json(url: str, *, timeout: float, context: str) -> Any:
    """GET `url` and return its decoded JSON body."""
    logger.info("Requesting ClimaCell data", extra={"context": context, "url": mask_url(url)})
    with _session_lock:
        resp = session.get(url, timeout=timeout)
    resp.raise_for_status()
    try:
        return resp.json()
    except ValueError as exc:
        raise ApiResponseError(f"ClimaCell {context} returned non-JSON response") from exc


def fetch_air_quality(
    latitude: float,
    longitude: float,
    *,
    api_key: str,
    fields: Sequence[str] = AIR_QUALITY_INDICATORS,
    base_url: str = CLIMACELL_BASE_URL,
    timeout: float = 10,
) -> AirQualityReading:
    """Fetch the realtime air-quality reading for the given coordinates."""
    url = build_query(
        f"{base_url}{REALTIME_PATH}",
        {
            "lat": latitude,
            "lon": longitude,
            "fields": list(fields),
            "apikey": api_key,
        },
    )
    data = _get_json(url, timeout=timeout, context="air_quality")
    try:
        return AirQualityReading.model_validate(data)
    except ValidationError as exc:
        raise ApiResponseError(f"Unexpected ClimaCell realtime payload: {exc}") from exc


def fetch_weather_hours(
    latitude: float,
    longitude: float,
    *,
    api_key: str,
    fields: Sequence[str] = WEATHER_FIELDS,
    unit_system: str = "si",
    base_url: str = CLIMACELL_BASE_URL,
    timeout: float = 10,
) -> List[WeatherReading]:
    """Fetch the hourly weather forecast for the given coordinates."""
    url = build_query(
        f"{base_url}{HOURLY_FORECAST_PATH}",
        {
            "lat": latitude,
            "lon": longitude,
            "unit_system": unit_system,
            "fields": list(fields),
            "apikey": api_key,
        },
    )
    data = _get_json(url, timeout=timeout, context="weather_hourly")
    try:
        readings = _WEATHER_READINGS.validate_python(data)
    except ValidationError as exc:
        raise ApiResponseError(f"Unexpected ClimaCell hourly payload: {exc}") from exc

    logger.debug("Fetched hourly weather", extra={"hours": len(readings)})
    return readings
