"""Event creation."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from .caldav import BookingResult, NewEvent, as_utc
from .ics import build_event_ics

if TYPE_CHECKING:
    from ..client import Client

logger = logging.getLogger(__name__)


def object_url(calendar_url: str, uid: str) -> str:
    """URL of the calendar object resource for a UID."""
    return f"{calendar_url.rstrip('/')}/{uid}.ics"


async def create(
    client: Client, calendar_url: str, event: NewEvent, uid: str | None = None
) -> BookingResult:
    """PUT a new event into a calendar.

    Args:
        client: CalDAV client
        calendar_url: Calendar collection URL, e.g. ``…/<uuid>/``
        event: Event to create
        uid: UID to use (a random UUID by default)

    Raises:
        ValueError: If the event does not end after it starts
        TransportError: If the server rejects the PUT
    """
    if as_utc(event.end) <= as_utc(event.start):
        raise ValueError("event must end after it starts")

    uid = uid or str(uuid.uuid4())
    url = object_url(calendar_url, uid)

    resp = await client.put_calendar_object(url, build_event_ics(event, uid))
    logger.info(f"Created event {uid} at {url} ({resp.status_code})")

    return BookingResult(
        uid=uid,
        url=url,
        status_code=resp.status_code,
        etag=resp.headers.get("etag"),
    )
