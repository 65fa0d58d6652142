"""Turn raw ClimaCell readings into template-ready records and attachments."""
from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence, Union
from zoneinfo import ZoneInfo

from weather_mailer.data_sources.climacell_client import AirQualityReading, WeatherReading
from weather_mailer.domain import (
    AIR_QUALITY_INDICATORS,
    AIR_QUALITY_THRESHOLDS,
    FORECAST_HOURS,
    LEGEND_ICON_DIR,
    WEATHER_ICON_DIR,
    AirQualityEntry,
    Attachment,
    WeatherEntry,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="formatters")


def _to_local(timestamp: dt.datetime, tz: ZoneInfo) -> dt.datetime:
    """Convert an observation time to `tz`; naive timestamps are taken as UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt.timezone.utc)
    return timestamp.astimezone(tz)


def filter_forecast_hours(
    records: Iterable[WeatherReading],
    today: dt.date,
    tz: ZoneInfo,
    hours: Iterable[int] = FORECAST_HOURS,
) -> List[WeatherReading]:
    """Keep the records of `today` (local calendar date) whose local hour is in `hours`."""
    wanted = set(hours)
    kept = []
    for record in records:
        local = _to_local(record.observation_time.value, tz)
        if local.hour in wanted and local.date() == today:
            kept.append(record)
    return kept


def format_weather_data(
    records: Sequence[WeatherReading],
    tz: ZoneInfo,
    *,
    assets_dir: Union[str, Path] = ".",
) -> List[WeatherEntry]:
    """Format hourly records for the forecast template, keeping their order."""
    icon_dir = Path(assets_dir) / WEATHER_ICON_DIR
    return [
        WeatherEntry(
            hour=_to_local(record.observation_time.value, tz).hour,
            weather_image=icon_dir / f"{record.weather_code.value}.png",
            cid=f"wid{i}",
            temp=record.temp.value,
            temp_unit=record.temp.units,
            humidity=record.humidity.value,
            humidity_unit=record.humidity.units,
            wind_speed=record.wind_speed.value,
            wind_speed_unit=record.wind_speed.units,
        )
        for i, record in enumerate(records)
    ]


def format_air_quality_data(
    reading: AirQualityReading,
    *,
    assets_dir: Union[str, Path] = ".",
) -> List[AirQualityEntry]:
    """One entry per indicator, always in AIR_QUALITY_INDICATORS order."""
    legend_dir = Path(assets_dir) / LEGEND_ICON_DIR
    return [
        AirQualityEntry(
            indicator=indicator,
            current_value=reading.value_of(indicator),
            air_image=legend_dir / f"{indicator}-legend.png",
            cid=f"aid{i}",
        )
        for i, indicator in enumerate(AIR_QUALITY_INDICATORS)
    ]


def select_exceeded(
    entries: Iterable[AirQualityEntry],
    thresholds: Mapping[str, float] = AIR_QUALITY_THRESHOLDS,
) -> List[AirQualityEntry]:
    """Entries whose current value is strictly above their indicator's threshold.

    An indicator with no threshold, or with no current value, never alerts.
    """
    exceeded = []
    for entry in entries:
        limit = thresholds.get(entry.indicator)
        if limit is None:
            logger.debug("No threshold configured", extra={"indicator": entry.indicator})
            continue
        if entry.current_value is not None and entry.current_value > limit:
            exceeded.append(entry)
    return exceeded


def build_attachments(*groups: Iterable[Union[WeatherEntry, AirQualityEntry]]) -> List[Attachment]:
    """Inline image attachments for each entry, groups concatenated in order."""
    attachments = []
    for group in groups:
        for entry in group:
            path = entry.weather_image if isinstance(entry, WeatherEntry) else entry.air_image
            attachments.append(Attachment(path=path, cid=entry.cid))
    return attachments
