"""Bind the ClimaCell fetchers to the configured location and credentials."""

from __future__ import annotations

from functools import partial

from weather_mailer.config import Settings
from weather_mailer.data_sources.base import CallableWeatherDataSource, WeatherDataSource
from weather_mailer.data_sources.climacell_client import fetch_air_quality, fetch_weather_hours
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_data_source(settings: Settings) -> WeatherDataSource:
    """Return a data source fetching for settings.latitude/longitude."""
    common = {
        "api_key": settings.api_key,
        "base_url": settings.api_base_url,
        "timeout": settings.request_timeout_seconds,
    }
    logger.info(
        "Using ClimaCell data source",
        extra={"base_url": settings.api_base_url, "latitude": settings.latitude, "longitude": settings.longitude},
    )
    return CallableWeatherDataSource(
        air_quality=partial(fetch_air_quality, settings.latitude, settings.longitude, **common),
        weather_hours=partial(fetch_weather_hours, settings.latitude, settings.longitude, **common),
    )
