import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from weather_mailer.config import ForecastSchedule, Settings
from weather_mailer.data_sources import CallableWeatherDataSource
from weather_mailer.scheduler import (
    ALERT_JOB_ID,
    FORECAST_JOB_ID,
    _alert_tick,
    build_scheduler,
    forecast_trigger,
    next_forecast_run,
    run_guarded,
)

TZ = ZoneInfo("America/Los_Angeles")


def _settings(**overrides):
    values = dict(
        smtp_host="smtp.example.com",
        smtp_user="bot@example.com",
        smtp_password="hunter2",
        recipient="me@example.com",
        api_key="k",
        timezone="America/Los_Angeles",
    )
    values.update(overrides)
    return Settings(**values)


class TestNextForecastRun(unittest.TestCase):
    def test_before_eight_fires_today(self):
        now = dt.datetime(2026, 10, 18, 6, 30, tzinfo=TZ)
        self.assertEqual(next_forecast_run(now), dt.datetime(2026, 10, 18, 8, 0, tzinfo=TZ))

    def test_after_eight_fires_tomorrow(self):
        now = dt.datetime(2026, 10, 18, 8, 0, 1, tzinfo=TZ)
        self.assertEqual(next_forecast_run(now), dt.datetime(2026, 10, 19, 8, 0, tzinfo=TZ))

    def test_exactly_eight_fires_now(self):
        now = dt.datetime(2026, 10, 18, 8, 0, tzinfo=TZ)
        self.assertEqual(next_forecast_run(now), now)

    def test_month_rollover(self):
        now = dt.datetime(2026, 10, 31, 21, 0, tzinfo=TZ)
        self.assertEqual(next_forecast_run(now), dt.datetime(2026, 11, 1, 8, 0, tzinfo=TZ))

    def test_custom_hour(self):
        now = dt.datetime(2026, 10, 18, 6, 30, tzinfo=TZ)
        self.assertEqual(next_forecast_run(now, hour=6), dt.datetime(2026, 10, 19, 6, 0, tzinfo=TZ))


class TestForecastTrigger(unittest.TestCase):
    def test_daily_at_is_wall_clock_cron(self):
        now = dt.datetime(2026, 10, 18, 9, 15, tzinfo=TZ)
        trigger = forecast_trigger(_settings(), now)
        self.assertIsInstance(trigger, CronTrigger)
        self.assertEqual(trigger.get_next_fire_time(None, now), next_forecast_run(now))

    def test_fixed_interval_starts_at_next_run(self):
        now = dt.datetime(2026, 10, 18, 9, 15, tzinfo=TZ)
        trigger = forecast_trigger(_settings(forecast_schedule=ForecastSchedule.FIXED_INTERVAL), now)
        self.assertIsInstance(trigger, IntervalTrigger)
        self.assertEqual(trigger.interval, dt.timedelta(days=1))
        self.assertEqual(trigger.get_next_fire_time(None, now), dt.datetime(2026, 10, 19, 8, 0, tzinfo=TZ))


class TestRunGuarded(unittest.TestCase):
    def test_returns_result(self):
        self.assertEqual(run_guarded("job", lambda x: x * 2, 21), 42)

    def test_swallows_exceptions(self):
        def boom():
            raise RuntimeError("boom")

        with self.assertLogs("weather_mailer.scheduler", level="ERROR"):
            self.assertIsNone(run_guarded("job", boom))

    def test_alert_tick_survives_fetch_failure(self):
        def boom():
            raise ConnectionError("network down")

        with self.assertLogs("weather_mailer.scheduler", level="ERROR"):
            _alert_tick(_settings(), CallableWeatherDataSource(boom, lambda: []), mailer=None)


class TestBuildScheduler(unittest.TestCase):
    def test_registers_both_timelines(self):
        now = dt.datetime(2026, 10, 18, 9, 15, tzinfo=TZ)
        ds = CallableWeatherDataSource(lambda: None, lambda: [])

        scheduler = build_scheduler(_settings(alert_interval_minutes=2), ds, mailer=None, now=now)
        jobs = {job.id: job for job in scheduler.get_jobs()}

        self.assertEqual(set(jobs), {FORECAST_JOB_ID, ALERT_JOB_ID})
        self.assertIsInstance(jobs[FORECAST_JOB_ID].trigger, CronTrigger)
        alert_trigger = jobs[ALERT_JOB_ID].trigger
        self.assertIsInstance(alert_trigger, IntervalTrigger)
        self.assertEqual(alert_trigger.interval, dt.timedelta(minutes=2))
        self.assertEqual(jobs[ALERT_JOB_ID].max_instances, 1)
        self.assertFalse(scheduler.running)

    def test_first_alert_check_runs_immediately_even_if_start_is_late(self):
        now = dt.datetime(2026, 10, 18, 9, 15, tzinfo=TZ)
        ds = CallableWeatherDataSource(lambda: None, lambda: [])

        scheduler = build_scheduler(_settings(), ds, mailer=None, now=now)
        alert = next(job for job in scheduler.get_jobs() if job.id == ALERT_JOB_ID)

        self.assertEqual(alert.next_run_time, now)
        self.assertIsNone(alert.misfire_grace_time)


if __name__ == "__main__":
    unittest.main()
