"""Busy interval queries.

Every calendar is queried concurrently with a calendar-query REPORT that
asks the server to expand recurrences. Servers that ignore the expand
request return the master event with its RRULE, so recurrences are also
expanded locally with dateutil.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Iterable

from dateutil.parser import isoparse
from dateutil.rrule import rruleset, rrulestr

from .caldav import BusyEvent, Calendar, CalendarQuery, as_utc
from .ics import VEvent, parse_events

if TYPE_CHECKING:
    from ..client import Client

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "(no title)"


def parse_instant(value: datetime | str) -> datetime:
    """Parse a window bound given as a datetime or an ISO-8601 string."""
    if isinstance(value, str):
        value = isoparse(value)
    return as_utc(value)


def _naive(dt: datetime) -> datetime:
    return dt.astimezone(UTC).replace(tzinfo=None)


def expand_occurrences(event: VEvent, window_start: datetime, window_end: datetime) -> list[datetime]:
    """Occurrence starts of a recurring event within [window_start, window_end].

    The rule is anchored at the event's start in UTC and evaluated on naive
    UTC datetimes; UNTIL values are read as UTC.
    """
    dtstart = _naive(event.start)

    rules = rruleset()
    for rule in event.rrules:
        rules.rrule(rrulestr(rule, dtstart=dtstart, ignoretz=True))
    for exdate in event.exdates:
        rules.exdate(_naive(exdate))

    occurrences = rules.between(_naive(window_start), _naive(window_end), inc=True)
    return [occurrence.replace(tzinfo=UTC) for occurrence in occurrences]


def busy_events_from_vevent(
    event: VEvent,
    window_start: datetime,
    window_end: datetime,
    calendar_url: str | None = None,
) -> list[BusyEvent]:
    """Turn one VEVENT into busy intervals.

    A recurring event yields one interval per occurrence in the window, each
    lasting exactly as long as the original event.
    """
    if event.is_recurring:
        starts = expand_occurrences(event, window_start, window_end)
    else:
        starts = [event.start]

    duration = event.duration
    if duration.total_seconds() <= 0:
        logger.debug(f"Skipping event {event.summary!r} with non-positive duration")
        return []

    return [
        BusyEvent(
            start=start,
            end=start + duration,
            title=event.summary or DEFAULT_TITLE,
            location=event.location,
            status=event.status,
            transparency=event.transparency,
            calendar_url=calendar_url,
        )
        for start in starts
    ]


def exclude_overridden(vevents: list[VEvent]) -> None:
    """Add the RECURRENCE-ID of every override to its master's exdates.

    An override replaces one occurrence of the master, so the master must not
    produce that occurrence as well.
    """
    overridden: dict[str, list[datetime]] = {}
    for vevent in vevents:
        if vevent.recurrence_id is not None and vevent.uid:
            overridden.setdefault(vevent.uid, []).append(vevent.recurrence_id)

    for vevent in vevents:
        if vevent.is_recurring and vevent.uid in overridden:
            vevent.exdates.extend(overridden[vevent.uid])


def busy_events_from_ics(
    ics: str,
    window_start: datetime,
    window_end: datetime,
    calendar_url: str | None = None,
) -> list[BusyEvent]:
    """Busy intervals for every VEVENT in one calendar-data payload.

    Unparseable payloads and events are skipped.
    """
    try:
        vevents = parse_events(ics)
    except ValueError as e:
        logger.warning(f"Skipping unparseable calendar data from {calendar_url}: {e}")
        return []

    exclude_overridden(vevents)

    events: list[BusyEvent] = []
    for vevent in vevents:
        try:
            events.extend(busy_events_from_vevent(vevent, window_start, window_end, calendar_url))
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(f"Skipping event {vevent.summary!r} with bad recurrence: {e}")
    return events


def sort_busy_events(events: list[BusyEvent]) -> list[BusyEvent]:
    return sorted(events, key=lambda e: (e.start, e.end, e.title))


async def get_busy(
    client: Client,
    calendars: Iterable[Calendar | str],
    window_start: datetime | str,
    window_end: datetime | str,
) -> list[BusyEvent]:
    """Get every busy interval intersecting the window, sorted by start.

    A calendar answering with a non-2xx status contributes nothing.

    Raises:
        ValueError: If the window ends before it starts
        httpx.TransportError: If a server cannot be reached at all
    """
    start = parse_instant(window_start)
    end = parse_instant(window_end)
    if end < start:
        raise ValueError(f"window end {end.isoformat()} is before start {start.isoformat()}")

    urls = [cal.url if isinstance(cal, Calendar) else cal for cal in calendars]
    query = CalendarQuery.events_between(start, end)

    # A failing request cancels the others and all of them are joined before
    # the error leaves this function.
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(client.query_calendar_data(url, query)) for url in urls]
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None

    events: list[BusyEvent] = []
    for url, task in zip(urls, tasks):
        for ics in task.result():
            events.extend(busy_events_from_ics(ics, start, end, calendar_url=url))

    logger.debug(f"{len(events)} busy intervals from {len(urls)} calendars")
    return sort_busy_events(events)
