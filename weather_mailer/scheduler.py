"""Forecast and alert timelines on an APScheduler BlockingScheduler.

Each timeline is its own scheduled job running on the scheduler's thread
pool with at most one instance at a time, so a slow forecast never holds up
an alert check. Job bodies run inside run_guarded(): a failing run is logged
and the timeline keeps going.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from weather_mailer.config import ForecastSchedule, Settings
from weather_mailer.data_sources import WeatherDataSource
from weather_mailer.jobs import air_quality_alert_job, weather_forecast_job
from weather_mailer.notifier import Mailer
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="scheduler")

FORECAST_JOB_ID = "weather_forecast"
ALERT_JOB_ID = "air_quality_alert"
FORECAST_INTERVAL = dt.timedelta(days=1)
# A forecast delayed by less than this still goes out.
FORECAST_MISFIRE_GRACE_SECONDS = 3600


def next_forecast_run(now: dt.datetime, *, hour: int = 8) -> dt.datetime:
    """Today's `hour`:00 in now's timezone, or tomorrow's if that moment has passed."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now > target:
        target = target + dt.timedelta(days=1)
    return target


def forecast_trigger(settings: Settings, now: dt.datetime) -> BaseTrigger:
    """Trigger for the forecast timeline according to settings.forecast_schedule."""
    tz = settings.tzinfo
    if settings.forecast_schedule is ForecastSchedule.FIXED_INTERVAL:
        first = next_forecast_run(now.astimezone(tz), hour=settings.forecast_hour)
        return IntervalTrigger(days=FORECAST_INTERVAL.days, start_date=first, timezone=tz)
    return CronTrigger(hour=settings.forecast_hour, minute=0, second=0, timezone=tz)


def run_guarded(name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run one job body; log and swallow any exception so the timeline survives."""
    try:
        return func(*args, **kwargs)
    except Exception:
        logger.exception("Scheduled job failed", extra={"job": name})
        return None


def _forecast_tick(settings: Settings, data_source: WeatherDataSource, mailer: Mailer) -> None:
    """Send the forecast, then log when the next one is due."""
    run_guarded(FORECAST_JOB_ID, weather_forecast_job, settings, data_source, mailer)

    now = dt.datetime.now(settings.tzinfo)
    if settings.forecast_schedule is ForecastSchedule.FIXED_INTERVAL:
        upcoming = now + FORECAST_INTERVAL
    else:
        upcoming = next_forecast_run(now, hour=settings.forecast_hour)
    logger.info(
        "The next weather forecast will be sent on %s in %.2f hours",
        upcoming.strftime("%Y-%m-%d %H:%M:%S %Z"),
        (upcoming - now).total_seconds() / 3600,
    )


def _alert_tick(settings: Settings, data_source: WeatherDataSource, mailer: Mailer) -> None:
    """Run one air-quality threshold check."""
    run_guarded(ALERT_JOB_ID, air_quality_alert_job, settings, data_source, mailer)


def build_scheduler(
    settings: Settings,
    data_source: WeatherDataSource,
    mailer: Mailer,
    *,
    now: Optional[dt.datetime] = None,
) -> BlockingScheduler:
    """Create a scheduler holding both timelines; the caller starts it."""
    tz = settings.tzinfo
    now = now.astimezone(tz) if now else dt.datetime.now(tz)
    scheduler = BlockingScheduler(timezone=tz)

    first_forecast = next_forecast_run(now, hour=settings.forecast_hour)
    logger.info(
        "The weather forecast job will start on %s in approx %.2f hours",
        first_forecast.strftime("%Y-%m-%d %H:%M:%S %Z"),
        (first_forecast - now).total_seconds() / 3600,
        extra={"schedule": settings.forecast_schedule.value},
    )
    scheduler.add_job(
        _forecast_tick,
        trigger=forecast_trigger(settings, now),
        args=(settings, data_source, mailer),
        id=FORECAST_JOB_ID,
        name="Weather forecast mail",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=FORECAST_MISFIRE_GRACE_SECONDS,
    )

    scheduler.add_job(
        _alert_tick,
        trigger=IntervalTrigger(minutes=settings.alert_interval_minutes, timezone=tz),
        args=(settings, data_source, mailer),
        id=ALERT_JOB_ID,
        name="Air quality alert check",
        next_run_time=now,
        max_instances=1,
        coalesce=True,
        # the first check must run however long start() takes to be called
        misfire_grace_time=None,
    )
    logger.info(
        "Air quality checks run now and every %d minutes",
        settings.alert_interval_minutes,
    )
    return scheduler
