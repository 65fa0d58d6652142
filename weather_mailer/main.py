"""Process startup: configuration, SMTP preflight and the two timelines."""

import os
from pathlib import Path
from typing import Optional

from weather_mailer.config import DEFAULT_CONFIG_PATH, ConfigError, load_settings
from weather_mailer.data_sources import build_data_source
from weather_mailer.notifier import Mailer
from weather_mailer.scheduler import build_scheduler
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="main")


def main(config_path: Optional[str] = None) -> int:
    """Start both timelines and block; returns 1 when startup fails.

    The config path comes from the argument, then WEATHER_MAILER_CONFIG, then
    ./config.json. Nothing is scheduled unless the SMTP server accepts our
    credentials.
    """
    path = Path(config_path or os.getenv("WEATHER_MAILER_CONFIG", str(DEFAULT_CONFIG_PATH)))
    try:
        settings = load_settings(path)
    except ConfigError:
        logger.exception("Could not load configuration", extra={"path": str(path)})
        return 1

    mailer = Mailer(settings)
    try:
        mailer.verify()
    except OSError:
        # smtplib.SMTPException is an OSError subclass
        logger.exception(
            "SMTP connectivity check failed; nothing scheduled",
            extra={"host": settings.smtp_host, "port": settings.smtp_port},
        )
        return 1
    logger.info("Server is ready to take our messages")

    scheduler = build_scheduler(settings, build_data_source(settings), mailer)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down scheduler")
        scheduler.shutdown(wait=False)
    return 0
