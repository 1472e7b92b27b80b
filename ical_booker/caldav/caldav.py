"""CalDAV types and calendar-query requests.

CalDAV is defined in RFC 4791.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from lxml import etree

from ..internal.elements import CALDAV_NAMESPACE, NAMESPACE, NSMAP


@dataclass(frozen=True)
class Calendar:
    """CalDAV calendar collection."""

    display_name: str
    url: str


def as_utc(dt: datetime) -> datetime:
    """Convert to an aware UTC datetime; naive values are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    """Render a UTC datetime as fixed-width ISO-8601 with milliseconds."""
    dt = as_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


@dataclass
class BusyEvent:
    """One busy interval: a single event or one occurrence of a recurring one."""

    start: datetime
    end: datetime
    title: str
    location: str | None = None
    status: str | None = None  # CONFIRMED, TENTATIVE, CANCELLED
    transparency: str | None = None  # OPAQUE, TRANSPARENT
    calendar_url: str | None = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict[str, str]:
        d = {
            "start": format_timestamp(self.start),
            "end": format_timestamp(self.end),
            "title": self.title,
        }
        for key in ("location", "status", "transparency", "calendar_url"):
            value = getattr(self, key)
            if value:
                d[key] = value
        return d


@dataclass
class NewEvent:
    """Event to be created on the server."""

    start: datetime
    end: datetime
    title: str
    attendee: str | None = None
    attendees: list[str] = field(default_factory=list)
    description: str | None = None
    location: str | None = None

    def all_attendees(self) -> list[str]:
        """Attendee addresses in order, without duplicates."""
        seen: list[str] = []
        for address in [self.attendee, *self.attendees]:
            if address and address not in seen:
                seen.append(address)
        return seen


@dataclass
class BookingResult:
    """Outcome of a successful PUT of a new event."""

    uid: str
    url: str
    status_code: int
    etag: str | None = None


def format_utc(dt: datetime) -> str:
    """Format a datetime in the compact UTC form used by CalDAV time ranges.

    Fractional seconds are truncated, e.g. ``20240101T100000Z``.
    """
    return as_utc(dt).strftime("%Y%m%dT%H%M%SZ")


@dataclass
class CalendarExpandRequest:
    """Request to expand recurring events."""

    start: datetime
    end: datetime

    def to_xml(self) -> etree._Element:
        elem = etree.Element(f"{{{CALDAV_NAMESPACE}}}expand")
        elem.set("start", format_utc(self.start))
        elem.set("end", format_utc(self.end))
        return elem


@dataclass
class CalendarCompRequest:
    """The calendar-data property requested from each matching object."""

    expand: CalendarExpandRequest | None = None

    def to_xml(self) -> etree._Element:
        elem = etree.Element(f"{{{CALDAV_NAMESPACE}}}calendar-data")
        if self.expand is not None:
            elem.append(self.expand.to_xml())
        return elem


@dataclass
class CompFilter:
    """Component filter for calendar queries."""

    name: str
    start: datetime | None = None
    end: datetime | None = None
    comps: list[CompFilter] = field(default_factory=list)

    def to_xml(self) -> etree._Element:
        elem = etree.Element(f"{{{CALDAV_NAMESPACE}}}comp-filter")
        elem.set("name", self.name)
        if self.start is not None or self.end is not None:
            time_range = etree.SubElement(elem, f"{{{CALDAV_NAMESPACE}}}time-range")
            if self.start is not None:
                time_range.set("start", format_utc(self.start))
            if self.end is not None:
                time_range.set("end", format_utc(self.end))
        for comp in self.comps:
            elem.append(comp.to_xml())
        return elem


@dataclass
class CalendarQuery:
    """CalDAV calendar-query REPORT request."""

    comp_request: CalendarCompRequest
    comp_filter: CompFilter

    def to_xml(self) -> etree._Element:
        root = etree.Element(f"{{{CALDAV_NAMESPACE}}}calendar-query", nsmap=NSMAP)
        prop = etree.SubElement(root, f"{{{NAMESPACE}}}prop")
        prop.append(self.comp_request.to_xml())
        filter_el = etree.SubElement(root, f"{{{CALDAV_NAMESPACE}}}filter")
        filter_el.append(self.comp_filter.to_xml())
        return root

    @staticmethod
    def events_between(start: datetime, end: datetime) -> CalendarQuery:
        """Query for VEVENTs overlapping [start, end], expanded by the server."""
        return CalendarQuery(
            comp_request=CalendarCompRequest(expand=CalendarExpandRequest(start=start, end=end)),
            comp_filter=CompFilter(
                name="VCALENDAR",
                comps=[CompFilter(name="VEVENT", start=start, end=end)],
            ),
        )
