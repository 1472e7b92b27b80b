"""Configuration for the CalDAV client and booking notifications.

Nothing in the library reads the environment on its own; the ``load_*``
helpers exist for scripts and the command-line tool.
"""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass

from . import __version__


@dataclass(frozen=True)
class Credentials:
    """CalDAV account credentials.

    ``principal`` is the server URL the discovery starts from, e.g.
    ``https://p55-caldav.icloud.com``. ``password`` is usually an
    app-specific password.
    """

    principal: str
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(principal={self.principal!r}, username={self.username!r})"


def basic_auth(credentials: Credentials) -> str:
    """Build the value of the Authorization header for HTTP Basic auth."""
    token = f"{credentials.username}:{credentials.password}".encode("utf-8")
    return f"Basic {base64.b64encode(token).decode('ascii')}"


@dataclass
class ClientConfig:
    """HTTP settings for talking to a CalDAV server."""

    timeout: float = 30.0  # Request timeout in seconds
    user_agent: str = f"ical-booker/{__version__}"
    debug: bool = False  # Log raw requests and responses


@dataclass
class EmailConfig:
    """EmailJS settings used for booking confirmations."""

    service_id: str = ""
    template_id: str = ""
    public_key: str = ""
    private_key: str = ""
    admin_email: str = ""
    from_name: str = ""
    from_email: str = ""
    origin: str = "*"
    # Timezone the event times are shown in
    timezone: str = "America/Toronto"
    endpoint: str = "https://api.emailjs.com/api/v1.0/email/send"
    timeout: float = 30.0


def _env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value.strip().strip('"')
    return default


def load_credentials() -> Credentials:
    """Read CalDAV credentials from the environment.

    Raises:
        ValueError: If any of the required variables is missing
    """
    principal = _env("CALDAV_PRINCIPAL")
    username = _env("CALDAV_USERNAME", "APPLE_ID")
    password = _env("CALDAV_PASSWORD", "APPLE_APP_PASSWORD")

    missing = [
        name
        for name, value in (
            ("CALDAV_PRINCIPAL", principal),
            ("CALDAV_USERNAME", username),
            ("CALDAV_PASSWORD", password),
        )
        if not value
    ]
    if missing:
        raise ValueError(f"missing environment variables: {', '.join(missing)}")

    return Credentials(principal=principal, username=username, password=password)


def load_email_config() -> EmailConfig:
    """Read EmailJS settings from the environment."""
    return EmailConfig(
        service_id=_env("EMAILJS_SERVICE_ID"),
        template_id=_env("EMAILJS_TEMPLATE_ID"),
        public_key=_env("EMAILJS_PUBLIC_KEY"),
        private_key=_env("EMAILJS_PRIVATE_KEY"),
        admin_email=_env("EMAILJS_ADMIN_EMAIL"),
        from_name=_env("EMAILJS_FROM_NAME"),
        from_email=_env("EMAILJS_FROM_EMAIL"),
        origin=_env("EMAILJS_ORIGIN", default="*"),
        timezone=_env("BOOKING_TIMEZONE", default="America/Toronto"),
    )
