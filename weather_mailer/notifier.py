"""Render the HTML mails and deliver them over SMTP with inline images."""
from __future__ import annotations

import datetime as dt
import mimetypes
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from weather_mailer.config import Settings
from weather_mailer.domain import AirQualityEntry, Attachment, WeatherEntry
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notifier")

FORECAST_TEMPLATE = "weather_forecast.html"
ALERT_TEMPLATE = "air_quality_alert.html"

FORECAST_SENDER_NAME = "Weather Forecast"
ALERT_SENDER_NAME = "Air Quality Alert"
FORECAST_SUBJECT = "Weather forecast for today and current air quality"
ALERT_SUBJECT = "An air quality limit has been exceeded"

PLAIN_TEXT_FALLBACK = "This message is best viewed in an HTML-capable mail client."


def format_day(day: dt.date) -> str:
    """US short date without zero padding, e.g. 10/8/2026."""
    return f"{day.month}/{day.day}/{day.year}"


class TemplateRenderer:
    """Load and render the mail templates from a directory."""

    def __init__(self, templates_dir: Union[str, Path]):
        """Build a Jinja2 environment that autoescapes the .html templates."""
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, name: str, **context: Any) -> str:
        """Render template `name` with `context` and return the HTML."""
        return self.env.get_template(name).render(**context)


class SmtpTransport:
    """SMTP connection settings plus a connectivity check and a send operation.

    A fresh connection is opened for every call; the object itself is built
    once at startup and shared by both timelines.
    """

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        *,
        port: int = 587,
        starttls: bool = True,
        timeout: float = 30.0,
    ):
        """Store the connection settings; nothing is opened until a call needs it."""
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpTransport":
        """Build a transport from the smtp_* fields of Settings."""
        return cls(
            settings.smtp_host,
            settings.smtp_user,
            settings.smtp_password,
            port=settings.smtp_port,
            starttls=settings.smtp_starttls,
            timeout=settings.smtp_timeout_seconds,
        )

    def _connect(self) -> smtplib.SMTP:
        """Open, upgrade to TLS when offered, and log in; the caller closes the connection."""
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            server.ehlo()
            if self.starttls and server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            server.login(self.user, self.password)
        except Exception:
            server.close()
            raise
        return server

    def verify(self) -> None:
        """Connect and authenticate; raises smtplib.SMTPException/OSError on failure."""
        with self._connect():
            pass
        logger.info("SMTP server reachable", extra={"host": self.host, "port": self.port})

    def send(self, message: EmailMessage) -> None:
        """Deliver `message` over a new authenticated connection."""
        with self._connect() as server:
            server.send_message(message)


class Mailer:
    """Builds the forecast and alert mails and hands them to the transport."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[SmtpTransport] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        """Use the given transport and renderer, or build them from settings."""
        self.settings = settings
        self.transport = transport or SmtpTransport.from_settings(settings)
        self.renderer = renderer or TemplateRenderer(settings.templates_dir)

    def verify(self) -> None:
        """Check the mail server before any timeline is scheduled."""
        self.transport.verify()

    def build_message(
        self,
        *,
        sender_name: str,
        subject: str,
        html: str,
        attachments: Sequence[Attachment],
    ) -> EmailMessage:
        """Plain-text fallback + HTML alternative, with every attachment inline as a related part."""
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((sender_name, self.settings.smtp_user))
        msg["To"] = self.settings.recipient
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain="weather-mailer")
        msg.set_content(PLAIN_TEXT_FALLBACK)
        msg.add_alternative(html, subtype="html")

        html_part = msg.get_payload()[-1]
        for attachment in attachments:
            path = Path(attachment.path)
            mime_type, _ = mimetypes.guess_type(path.name)
            maintype, subtype = (mime_type or "application/octet-stream").split("/", 1)
            html_part.add_related(
                path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                cid=f"<{attachment.cid}>",
                filename=path.name,
            )
        return msg

    def send_weather_forecast(
        self,
        weather: Sequence[WeatherEntry],
        air_quality: Sequence[AirQualityEntry],
        attachments: Sequence[Attachment],
        *,
        day: Optional[dt.date] = None,
    ) -> EmailMessage:
        """Render and send the daily forecast mail."""
        day = day or dt.datetime.now(self.settings.tzinfo).date()
        html = self.renderer.render(
            FORECAST_TEMPLATE,
            weather_forecast=weather,
            air_quality=air_quality,
            day=format_day(day),
        )
        msg = self.build_message(
            sender_name=FORECAST_SENDER_NAME,
            subject=FORECAST_SUBJECT,
            html=html,
            attachments=attachments,
        )
        self.transport.send(msg)
        logger.info(
            "Sent forecast mail",
            extra={"recipient": self.settings.recipient, "hours": len(weather), "attachments": len(attachments)},
        )
        return msg

    def send_air_quality_alert(
        self,
        air_quality: Sequence[AirQualityEntry],
        attachments: Sequence[Attachment],
    ) -> EmailMessage:
        """Render and send the threshold alert mail."""
        html = self.renderer.render(ALERT_TEMPLATE, air_quality=air_quality)
        msg = self.build_message(
            sender_name=ALERT_SENDER_NAME,
            subject=ALERT_SUBJECT,
            html=html,
            attachments=attachments,
        )
        self.transport.send(msg)
        logger.info(
            "Sent air quality alert",
            extra={"recipient": self.settings.recipient, "indicators": [e.indicator for e in air_quality]},
        )
        return msg
