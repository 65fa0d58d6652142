"""Domain vocabulary: the fixed location, field sets, thresholds and mail records.

Everything here is immutable for the lifetime of the process. The formatted
records are what the email templates consume; each one lives for a single
render and is then discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

# San Francisco
LATITUDE = 37.7749
LONGITUDE = -122.4194

AIR_QUALITY_INDICATORS: Tuple[str, ...] = ("pm10", "pm25", "o3", "no2", "co", "so2")
WEATHER_FIELDS: Tuple[str, ...] = ("weather_code", "temp", "wind_speed", "humidity")

# Local hours included in the morning forecast mail.
FORECAST_HOURS = frozenset({8, 10, 12, 14, 16, 18, 20, 22})

AIR_QUALITY_THRESHOLDS: Dict[str, float] = {
    "co": 7000,
    "no2": 230,
    "o3": 145,
    "pm10": 204,
    "pm25": 45,
    "so2": 131,
}

WEATHER_ICON_DIR = "summary-icons"
LEGEND_ICON_DIR = "legends"


@dataclass(frozen=True)
class WeatherEntry:
    """One hour of forecast, ready for the forecast template."""
    hour: int
    weather_image: Path
    cid: str
    temp: Optional[float]
    temp_unit: Optional[str]
    humidity: Optional[float]
    humidity_unit: Optional[str]
    wind_speed: Optional[float]
    wind_speed_unit: Optional[str]


@dataclass(frozen=True)
class AirQualityEntry:
    """Current value of a single pollutant plus its legend image."""
    indicator: str
    current_value: Optional[float]
    air_image: Path
    cid: str


@dataclass(frozen=True)
class Attachment:
    """Inline image attached to a mail and referenced from the HTML as cid:<cid>."""
    path: Path
    cid: str
