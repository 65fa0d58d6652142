"""Process configuration: a JSON credentials file layered over environment variables."""
from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from weather_mailer.domain import AIR_QUALITY_THRESHOLDS, LATITUDE, LONGITUDE
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="config")

DEFAULT_CONFIG_PATH = Path("./config.json")
DEFAULT_API_BASE_URL = "https://api.climacell.co/v3"
_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Keys used by the credentials file -> Settings field names.
CONFIG_FILE_KEYS = {
    "host": "smtp_host",
    "user": "smtp_user",
    "pass": "smtp_password",
    "cc_key": "api_key",
    "recipient": "recipient",
}


class ConfigError(ValueError):
    """Raised when the configuration file is missing, malformed or incomplete."""


class ForecastSchedule(str, Enum):
    """How the forecast timeline picks its next fire time."""
    DAILY_AT = "daily_at"  # every day at forecast_hour local time
    FIXED_INTERVAL = "fixed_interval"  # first at forecast_hour, then every 24h after the previous fire


class Settings(BaseSettings):
    """Environment-driven configuration; the credentials file supplies the required fields."""
    model_config = SettingsConfigDict(env_prefix="WEATHER_MAILER_", extra="ignore")

    smtp_host: str
    smtp_port: int = 587
    smtp_user: str
    smtp_password: str
    smtp_starttls: bool = True
    smtp_timeout_seconds: float = 30.0
    recipient: str

    api_key: str
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout_seconds: float = 10.0

    latitude: float = LATITUDE
    longitude: float = LONGITUDE
    timezone: str = "America/Los_Angeles"

    forecast_hour: int = Field(default=8, ge=0, le=23)
    forecast_schedule: ForecastSchedule = ForecastSchedule.DAILY_AT
    alert_interval_minutes: int = Field(default=2, gt=0)
    thresholds: Dict[str, float] = Field(default_factory=lambda: dict(AIR_QUALITY_THRESHOLDS))

    assets_dir: Path = Path(".")
    templates_dir: Path = _TEMPLATES_DIR

    @field_validator("api_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("timezone", mode="after")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        """Reject names zoneinfo cannot resolve."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{v}'") from exc
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """ZoneInfo for `timezone`, used for every local time in the mails and schedules."""
        return ZoneInfo(self.timezone)


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Read the credentials file and build Settings.

    File values win over WEATHER_MAILER_* environment variables. Besides the
    credential keys (host, user, pass, cc_key, recipient) the file may carry
    any Settings field by its own name.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    values = {CONFIG_FILE_KEYS.get(key, key): value for key, value in raw.items()}
    try:
        settings = Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc

    logger.info(
        "Loaded configuration",
        extra={"path": str(path), "smtp_host": settings.smtp_host, "recipient": settings.recipient},
    )
    return settings
