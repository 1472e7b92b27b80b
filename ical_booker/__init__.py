"""A CalDAV client for calendar discovery, availability and bookings."""

__version__ = "1.0.0"

from .caldav import BookingResult, BusyEvent, Calendar, NewEvent  # noqa: E402
from .client import Client, create_booking, discover_calendars, get_busy_events  # noqa: E402
from .config import ClientConfig, Credentials, EmailConfig  # noqa: E402
from .internal import CalDAVError, DiscoveryError, TransportError  # noqa: E402
from .notify import NotificationError, send_booking_emails  # noqa: E402

__all__ = [
    "BookingResult",
    "BusyEvent",
    "Calendar",
    "NewEvent",
    "Client",
    "create_booking",
    "discover_calendars",
    "get_busy_events",
    "ClientConfig",
    "Credentials",
    "EmailConfig",
    "CalDAVError",
    "DiscoveryError",
    "TransportError",
    "NotificationError",
    "send_booking_emails",
]
