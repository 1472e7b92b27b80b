#!/usr/bin/env python3
"""Discover calendars, list the next 24 hours of busy times and find a free slot.

Set CALDAV_PRINCIPAL, CALDAV_USERNAME (or APPLE_ID) and CALDAV_PASSWORD
(or APPLE_APP_PASSWORD) before running.
"""

import asyncio
import sys
from datetime import UTC, datetime, timedelta

import httpx

from ical_booker import BusyEvent, CalDAVError, Client, NewEvent
from ical_booker.config import load_credentials

# Set to True to actually create a 30 minute booking in the first free slot
CREATE_BOOKING = False


def find_free_slots(
    busy: list[BusyEvent],
    start: datetime,
    end: datetime,
    min_duration: timedelta = timedelta(minutes=30),
) -> list[tuple[datetime, datetime]]:
    """Gaps of at least ``min_duration`` between busy intervals in [start, end]."""
    slots = []
    current = start
    for event in sorted(busy, key=lambda e: e.start):
        if event.end <= start or event.start >= end:
            continue
        if event.start - current >= min_duration:
            slots.append((current, event.start))
        current = max(current, event.end)

    if end - current >= min_duration:
        slots.append((current, end))
    return slots


async def main() -> int:
    try:
        credentials = load_credentials()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async with Client(credentials) as client:
        print("Discovering calendars...")
        calendars = await client.discover_calendars()
        if not calendars:
            print("No calendars found")
            return 0

        for i, cal in enumerate(calendars, 1):
            print(f"  {i}. {cal.display_name}")

        now = datetime.now(UTC).replace(microsecond=0)
        tomorrow = now + timedelta(hours=24)

        print("\nBusy times for the next 24 hours:")
        busy = await client.get_busy_events(calendars, now, tomorrow)
        if not busy:
            print("  none")
        for event in busy:
            print(f"  {event.start:%a %H:%M} - {event.end:%H:%M} UTC  {event.title}")

        slots = find_free_slots(busy, now, tomorrow)
        if not slots:
            print("\nNo free slots available")
            return 0

        slot_start, slot_end = slots[0]
        print(f"\nFirst free slot: {slot_start:%a %H:%M} - {slot_end:%H:%M} UTC")

        if not CREATE_BOOKING:
            print("Booking creation is disabled; set CREATE_BOOKING = True to create one")
            return 0

        result = await client.create_booking(
            calendars[0].url,
            NewEvent(
                start=slot_start,
                end=slot_start + timedelta(minutes=30),
                title="Test booking",
                description="Created by the ical-booker example",
                attendee="test@example.com",
            ),
        )
        print(f"Created {result.uid} at {result.url}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except CalDAVError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"Network error: {e}", file=sys.stderr)
        sys.exit(1)
