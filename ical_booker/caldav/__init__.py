"""CalDAV support: discovery, busy queries and bookings."""

from .caldav import (
    BookingResult,
    BusyEvent,
    Calendar,
    CalendarCompRequest,
    CalendarExpandRequest,
    CalendarQuery,
    CompFilter,
    NewEvent,
    format_utc,
)

__all__ = [
    "BookingResult",
    "BusyEvent",
    "Calendar",
    "CalendarCompRequest",
    "CalendarExpandRequest",
    "CalendarQuery",
    "CompFilter",
    "NewEvent",
    "format_utc",
]
