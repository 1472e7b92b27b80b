"""iCalendar parsing and generation for busy queries and bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent
from icalendar import vCalAddress

from .caldav import NewEvent, as_utc

logger = logging.getLogger(__name__)

PRODID = "-//ical-booker//CalDAV Client//EN"


@dataclass
class VEvent:
    """The parts of a VEVENT that matter for availability."""

    start: datetime
    end: datetime
    summary: str | None = None
    uid: str | None = None
    # Set on an override of a single occurrence of a recurring event
    recurrence_id: datetime | None = None
    rrules: list[str] = field(default_factory=list)  # e.g. "FREQ=DAILY;COUNT=5"
    exdates: list[datetime] = field(default_factory=list)
    location: str | None = None
    status: str | None = None
    transparency: str | None = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_recurring(self) -> bool:
        return bool(self.rrules) and self.recurrence_id is None


def to_utc(value: date | datetime) -> datetime:
    """Normalize an iCalendar date or date-time to an aware UTC datetime.

    All-day dates become midnight UTC and floating times are taken as UTC.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(component, name: str) -> str | None:
    value = component.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _event_end(component, start_value: date | datetime) -> datetime | None:
    dtend = component.get("dtend")
    if dtend is not None:
        return to_utc(dtend.dt)

    duration = component.get("duration")
    if duration is not None:
        return to_utc(start_value) + duration.dt

    # RFC 5545 3.6.1: an all-day event without DTEND lasts one day
    if not isinstance(start_value, datetime):
        return to_utc(start_value) + timedelta(days=1)

    return None


def vevent_from_component(component) -> VEvent | None:
    """Convert an icalendar VEVENT into a VEvent.

    Returns None when the event has no start or no computable end.
    """
    dtstart = component.get("dtstart")
    if dtstart is None:
        return None

    start = to_utc(dtstart.dt)
    end = _event_end(component, dtstart.dt)
    if end is None:
        return None

    recurrence_id = component.get("recurrence-id")

    rrules = [rule.to_ical().decode("utf-8") for rule in _as_list(component.get("rrule"))]

    exdates: list[datetime] = []
    for exdate in _as_list(component.get("exdate")):
        for value in exdate.dts:
            exdates.append(to_utc(value.dt))

    return VEvent(
        start=start,
        end=end,
        summary=_text(component, "summary"),
        uid=_text(component, "uid"),
        recurrence_id=to_utc(recurrence_id.dt) if recurrence_id is not None else None,
        rrules=rrules,
        exdates=exdates,
        location=_text(component, "location"),
        status=_text(component, "status"),
        transparency=_text(component, "transp"),
    )


def parse_events(ics: str | bytes) -> list[VEvent]:
    """Parse every VEVENT in an iCalendar blob.

    A VEVENT that cannot be read is logged and skipped.

    Raises:
        ValueError: If the blob itself is not valid iCalendar data
    """
    events: list[VEvent] = []
    for cal in iCalendar.from_ical(ics, multiple=True):
        for component in cal.walk("VEVENT"):
            try:
                event = vevent_from_component(component)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable VEVENT {component.get('uid')}: {e}")
                continue
            if event is not None:
                events.append(event)
    return events


def build_event_ics(event: NewEvent, uid: str, now: datetime | None = None) -> bytes:
    """Serialize a new event into a VCALENDAR containing one VEVENT.

    Args:
        event: Event to serialize
        uid: UID for the VEVENT
        now: DTSTAMP value (defaults to the current time)

    Returns:
        iCalendar data as bytes
    """
    cal = iCalendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")

    vevent = iEvent()
    vevent.add("uid", uid)
    vevent.add("dtstamp", as_utc(now or datetime.now(UTC)))
    vevent.add("dtstart", as_utc(event.start))
    vevent.add("dtend", as_utc(event.end))
    vevent.add("summary", event.title)
    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)

    for address in event.all_attendees():
        attendee = vCalAddress(f"mailto:{address}")
        attendee.params["ROLE"] = "REQ-PARTICIPANT"
        attendee.params["RSVP"] = "TRUE"
        vevent.add("attendee", attendee, encode=0)

    cal.add_component(vevent)
    return cal.to_ical()
