"""Booking confirmation e-mails sent through the EmailJS REST API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from .caldav.caldav import BookingResult, NewEvent, as_utc
from .config import EmailConfig

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """EmailJS rejected a message."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        message = f"EmailJS error {status_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


def format_event_time(dt: datetime, timezone: str) -> str:
    """Human readable time, e.g. ``Monday, January 15, 2024, 10:00 AM EST``."""
    local = as_utc(dt).astimezone(ZoneInfo(timezone))
    return local.strftime("%A, %B %d, %Y, %I:%M %p %Z")


def template_params(config: EmailConfig, event: NewEvent, booking: BookingResult) -> dict[str, Any]:
    """Template variables shared by the guest and admin messages."""
    attendee = event.attendee or ""
    return {
        "event_title": event.title,
        "event_start": format_event_time(event.start, config.timezone),
        "event_end": format_event_time(event.end, config.timezone),
        "attendee_name": attendee.split("@")[0] or "Guest",
        "attendee_email": attendee or "N/A",
        "meeting_reason": event.description or "",
        "ics_url": booking.url,
        "uid": booking.uid,
        "from_name": config.from_name,
        "from_email": config.from_email,
    }


async def send_email(
    http_client: httpx.AsyncClient, config: EmailConfig, params: dict[str, Any]
) -> None:
    """Send one templated message.

    Raises:
        NotificationError: If EmailJS answers with a non-2xx status
    """
    payload = {
        "service_id": config.service_id,
        "template_id": config.template_id,
        "user_id": config.public_key,
        "accessToken": config.private_key,
        "template_params": params,
    }
    headers = {
        "X-EmailJS-Key": config.private_key,
        "Origin": config.origin,
    }

    response = await http_client.post(config.endpoint, json=payload, headers=headers)
    if response.status_code // 100 != 2:
        raise NotificationError(response.status_code, response.text[:200].strip())

    logger.info(f"Sent booking e-mail to {params.get('to_email')}")


async def send_booking_emails(
    config: EmailConfig,
    event: NewEvent,
    booking: BookingResult,
    http_client: httpx.AsyncClient | None = None,
) -> None:
    """Send a confirmation to the attendee (if any) and a notice to the admin."""
    params = template_params(config, event, booking)

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=config.timeout)
    try:
        if event.attendee:
            await send_email(
                client,
                config,
                {**params, "to_email": event.attendee, "to_name": params["attendee_name"]},
            )

        await send_email(
            client,
            config,
            {**params, "to_email": config.admin_email, "to_name": config.from_name},
        )
    finally:
        if owns_client:
            await client.aclose()
