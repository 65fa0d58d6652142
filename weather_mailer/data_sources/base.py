"""Interfaces and helpers for weather/air-quality data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Protocol

from weather_mailer.data_sources.climacell_client import AirQualityReading, WeatherReading


class WeatherDataSource(Protocol):
    """Anything that can provide the realtime air quality and the hourly forecast."""

    def fetch_air_quality(self) -> AirQualityReading:
        """Return the current air-quality reading."""
        ...

    def fetch_weather_hours(self) -> List[WeatherReading]:
        """Return the hourly weather forecast records."""
        ...


@dataclass
class CallableWeatherDataSource(WeatherDataSource):
    """Wrap two zero-argument callables so backends can be swapped (or faked in tests)."""

    air_quality: Callable[[], AirQualityReading]
    weather_hours: Callable[[], List[WeatherReading]]

    def fetch_air_quality(self) -> AirQualityReading:
        """Delegate to the configured air-quality callable."""
        return self.air_quality()

    def fetch_weather_hours(self) -> List[WeatherReading]:
        """Delegate to the configured hourly-weather callable."""
        return self.weather_hours()
