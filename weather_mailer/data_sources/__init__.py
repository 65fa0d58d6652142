"""Data sources for the ClimaCell weather and air-quality API."""

from .base import CallableWeatherDataSource, WeatherDataSource
from .factory import build_data_source
from .query import build_query
from .climacell_client import (
    AirQualityReading,
    ApiResponseError,
    Measurement,
    WeatherReading,
    fetch_air_quality,
    fetch_weather_hours,
)

__all__ = [
    "build_data_source",
    "build_query",
    "WeatherDataSource",
    "CallableWeatherDataSource",
    "AirQualityReading",
    "ApiResponseError",
    "Measurement",
    "WeatherReading",
    "fetch_air_quality",
    "fetch_weather_hours",
]
