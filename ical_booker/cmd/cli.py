"""Command-line tool for trying a CalDAV account."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime, timedelta

import httpx
from dateutil.parser import isoparse

from ..caldav.caldav import NewEvent
from ..client import Client
from ..config import ClientConfig, load_credentials, load_email_config
from ..internal import CalDAVError
from ..notify import NotificationError, send_booking_emails


def _instant(value: str) -> datetime:
    dt = isoparse(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


async def _discover(client: Client, args: argparse.Namespace) -> int:
    calendars = await client.discover_calendars()
    if not calendars:
        print("No calendars found")
        return 0
    for i, cal in enumerate(calendars, 1):
        print(f"{i}. {cal.display_name}  {cal.url}")
    return 0


async def _busy(client: Client, args: argparse.Namespace) -> int:
    start = _instant(args.start) if args.start else datetime.now(UTC)
    end = start + timedelta(hours=args.hours)

    calendars = await client.discover_calendars()
    events = await client.get_busy_events(calendars, start, end)

    if args.json:
        print(json.dumps([e.to_dict() for e in events], indent=2))
    elif not events:
        print("No busy times found")
    else:
        for e in events:
            print(f"{e.start:%Y-%m-%d %H:%M} - {e.end:%H:%M} UTC  {e.title}")
    return 0


async def _book(client: Client, args: argparse.Namespace) -> int:
    calendar_url = args.calendar
    if not calendar_url:
        calendars = await client.discover_calendars()
        if not calendars:
            print("Error: no calendar to book into", file=sys.stderr)
            return 1
        calendar_url = calendars[0].url

    event = NewEvent(
        start=_instant(args.start),
        end=_instant(args.end),
        title=args.title,
        attendee=args.attendee,
        description=args.description,
    )
    result = await client.create_booking(calendar_url, event)
    print(f"Created {result.uid}")
    print(f"  {result.url}")

    if args.notify:
        await send_booking_emails(load_email_config(), event, result)
        print("Confirmation e-mails sent")
    return 0


COMMANDS = {"discover": _discover, "busy": _busy, "book": _book}


async def run(args: argparse.Namespace) -> int:
    credentials = load_credentials()
    config = ClientConfig(debug=args.debug)
    async with Client(credentials, config=config) as client:
        return await COMMANDS[args.command](client, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CalDAV calendar discovery, availability and booking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Credentials are read from the environment:
  CALDAV_PRINCIPAL   server URL, e.g. https://p55-caldav.icloud.com
  CALDAV_USERNAME    account name (APPLE_ID is accepted too)
  CALDAV_PASSWORD    app-specific password (APPLE_APP_PASSWORD is accepted too)

Examples:
  ical-booker discover
  ical-booker busy --hours 48
  ical-booker book --start 2024-05-01T15:00Z --end 2024-05-01T15:30Z --title "Call"
        """,
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging (logs request/response bodies with formatted XML)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("discover", help="list calendar collections")

    busy = sub.add_parser("busy", help="list busy intervals")
    busy.add_argument("--start", help="window start, ISO-8601 (default: now)")
    busy.add_argument("--hours", type=float, default=24, help="window length (default: 24)")
    busy.add_argument("--json", action="store_true", help="print JSON")

    book = sub.add_parser("book", help="create an event")
    book.add_argument("--start", required=True, help="event start, ISO-8601")
    book.add_argument("--end", required=True, help="event end, ISO-8601")
    book.add_argument("--title", required=True)
    book.add_argument("--attendee", help="attendee e-mail address")
    book.add_argument("--description")
    book.add_argument("--calendar", help="calendar URL (default: first discovered)")
    book.add_argument("--notify", action="store_true", help="send EmailJS confirmations")

    return parser


def main() -> None:
    """Main entry point for the ical-booker command."""
    args = build_parser().parse_args()

    if args.debug:
        from ..debug import setup_debug_logging
        setup_debug_logging()

    try:
        code = asyncio.run(run(args))
    except (CalDAVError, NotificationError, ValueError, httpx.HTTPError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
