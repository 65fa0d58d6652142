"""The two mail jobs: the daily forecast and the air-quality threshold alert."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from weather_mailer.config import Settings
from weather_mailer.data_sources import WeatherDataSource
from weather_mailer.domain import AirQualityEntry
from weather_mailer.formatters import (
    build_attachments,
    filter_forecast_hours,
    format_air_quality_data,
    format_weather_data,
    select_exceeded,
)
from weather_mailer.notifier import Mailer
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="jobs")


def weather_forecast_job(
    settings: Settings,
    data_source: WeatherDataSource,
    mailer: Mailer,
    *,
    now: Optional[dt.datetime] = None,
) -> None:
    """Fetch, filter to today's forecast hours, format and mail the forecast.

    Any fetch, format or send failure propagates to the caller.
    """
    logger.info("Acquiring the weather forecast")
    tz = settings.tzinfo
    now = now.astimezone(tz) if now else dt.datetime.now(tz)

    air_quality = data_source.fetch_air_quality()
    hourly = data_source.fetch_weather_hours()

    todays_hours = filter_forecast_hours(hourly, now.date(), tz)
    logger.debug(
        "Filtered forecast hours",
        extra={"fetched": len(hourly), "kept": len(todays_hours), "day": now.date().isoformat()},
    )

    weather_entries = format_weather_data(todays_hours, tz, assets_dir=settings.assets_dir)
    air_entries = format_air_quality_data(air_quality, assets_dir=settings.assets_dir)
    attachments = build_attachments(weather_entries, air_entries)

    mailer.send_weather_forecast(weather_entries, air_entries, attachments, day=now.date())
    logger.info("Weather forecast was sent via email")


def air_quality_alert_job(
    settings: Settings,
    data_source: WeatherDataSource,
    mailer: Mailer,
) -> List[AirQualityEntry]:
    """Mail an alert listing every indicator above its threshold.

    Returns the exceeded entries; an empty list means no mail was sent.
    """
    logger.info("Checking the air quality")
    air_entries = format_air_quality_data(data_source.fetch_air_quality(), assets_dir=settings.assets_dir)

    exceeded = select_exceeded(air_entries, settings.thresholds)
    if not exceeded:
        logger.info("No air quality limit has been exceeded")
        return exceeded

    logger.warning(
        "An air quality limit has been exceeded",
        extra={"indicators": {e.indicator: e.current_value for e in exceeded}},
    )
    mailer.send_air_quality_alert(exceeded, build_attachments(exceeded))
    logger.info("Alert was sent")
    return exceeded
