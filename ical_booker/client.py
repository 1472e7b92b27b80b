"""CalDAV client implementation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

import httpx

from .caldav import booking, busy, discovery
from .caldav.caldav import BookingResult, BusyEvent, Calendar, CalendarQuery, NewEvent
from .config import ClientConfig, Credentials
from .internal import Client as InternalClient
from .internal import Depth, DiscoveryError, MultiStatus, PropFind, is_success
from .internal import elements as elem

logger = logging.getLogger(__name__)


class Client:
    """CalDAV client for one account.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient | None = None,
        config: ClientConfig | None = None,
    ):
        """Initialize CalDAV client.

        Args:
            credentials: Principal URL, username and password
            http_client: HTTP client to use; the caller keeps ownership
            config: Timeout and logging settings
        """
        self.credentials = credentials
        self.internal_client = InternalClient(credentials, http_client, config)

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def find_current_user_principal(self) -> str:
        """Find the current user's principal URL.

        Returns:
            Absolute principal URL

        Raises:
            DiscoveryError: If the server does not report a principal
            TransportError: If the request fails with a non-2xx status
        """
        url = self.credentials.principal
        try:
            ms = await self.internal_client.propfind_multistatus(
                url, Depth.ZERO, PropFind.of(elem.CURRENT_USER_PRINCIPAL)
            )
        except ValueError as e:
            raise DiscoveryError(f"principal not found: {e}") from e

        for resp in ms.responses:
            principal_elem = resp.get_prop(elem.CURRENT_USER_PRINCIPAL)
            if principal_elem is None:
                continue
            if principal_elem.find(f"{{{elem.NAMESPACE}}}unauthenticated") is not None:
                raise DiscoveryError("principal not found: unauthenticated")
            href = elem.Href.from_parent(principal_elem)
            if href is not None:
                return self.internal_client.resolve_href(str(href))

        raise DiscoveryError("principal not found")

    async def find_calendar_home_set(self, principal_url: str) -> str | None:
        """Ask the principal for its calendar-home-set.

        Returns:
            Absolute home URL, or None if the server does not report one

        Raises:
            TransportError: If the request fails with a non-2xx status
        """
        try:
            ms = await self.internal_client.propfind_multistatus(
                principal_url, Depth.ZERO, PropFind.of(elem.CALENDAR_HOME_SET)
            )
        except ValueError as e:
            logger.warning(f"Unreadable calendar-home-set response from {principal_url}: {e}")
            return None

        for resp in ms.responses:
            href = elem.Href.from_parent(resp.find_prop_local("calendar-home-set"))
            if href is not None:
                return self.internal_client.resolve_href(str(href))
        return None

    async def probe_collection(self, url: str) -> bool:
        """Check whether a collection exists with a Depth 1 PROPFIND.

        Depth 1 is used because some servers (iCloud) reject Depth 0 on
        the calendar home. Connection errors count as a failed probe.
        """
        try:
            resp = await self.internal_client.propfind(url, Depth.ONE)
        except httpx.TransportError as e:
            logger.info(f"Probe of {url} failed: {e}")
            return False

        logger.debug(f"Probe of {url}: {resp.status_code}")
        return is_success(resp.status_code)

    async def list_collections(self, home_url: str) -> MultiStatus:
        """List the children of the calendar home with their display names.

        Raises:
            DiscoveryError: If the listing is not 2xx or cannot be parsed
        """
        resp = await self.internal_client.propfind(
            home_url, Depth.ONE, PropFind.of(elem.DISPLAY_NAME, elem.RESOURCE_TYPE)
        )
        if not is_success(resp.status_code):
            raise DiscoveryError(
                f"failed to list calendars at {home_url}: "
                f"{resp.status_code} {resp.reason_phrase}".rstrip(),
                status_code=resp.status_code,
            )

        try:
            return MultiStatus.from_bytes(resp.content)
        except ValueError as e:
            raise DiscoveryError(f"failed to list calendars at {home_url}: {e}") from e

    async def query_calendar_data(self, calendar_url: str, query: CalendarQuery) -> list[str]:
        """Run a calendar-query REPORT and return the calendar-data payloads.

        A non-2xx status or an unreadable body yields an empty list.

        Raises:
            httpx.TransportError: If the server cannot be reached
        """
        resp = await self.internal_client.report(calendar_url, query.to_xml())
        if not is_success(resp.status_code):
            logger.warning(f"calendar-query on {calendar_url} returned {resp.status_code}")
            return []

        try:
            root = elem.parse_xml(resp.content)
        except ValueError as e:
            logger.warning(f"Unreadable calendar-query response from {calendar_url}: {e}")
            return []

        payloads = []
        for node in root.iter():
            if not isinstance(node.tag, str) or elem.local_name(node) != "calendar-data":
                continue
            if node.text and node.text.strip():
                payloads.append(node.text)
        return payloads

    async def put_calendar_object(self, url: str, ics: bytes) -> httpx.Response:
        """Upload an iCalendar object.

        Raises:
            TransportError: If the response status is not 2xx
        """
        return await self.internal_client.put(url, ics, "text/calendar; charset=utf-8")

    async def discover_calendars(self) -> list[Calendar]:
        """Discover the account's calendar collections."""
        return await discovery.discover(self)

    async def get_busy_events(
        self,
        calendars: Iterable[Calendar | str],
        window_start: datetime | str,
        window_end: datetime | str,
    ) -> list[BusyEvent]:
        """Get busy intervals across calendars, sorted by start."""
        return await busy.get_busy(self, calendars, window_start, window_end)

    async def create_booking(self, calendar_url: str, event: NewEvent) -> BookingResult:
        """Create a new event in a calendar."""
        return await booking.create(self, calendar_url, event)

    async def close(self) -> None:
        """Close the client."""
        await self.internal_client.close()


async def discover_calendars(
    credentials: Credentials,
    http_client: httpx.AsyncClient | None = None,
    config: ClientConfig | None = None,
) -> list[Calendar]:
    """Discover all calendar collections for a CalDAV account.

    Works with iCloud partition hosts, Fastmail and most generic servers.
    """
    async with Client(credentials, http_client, config) as client:
        return await client.discover_calendars()


async def get_busy_events(
    credentials: Credentials,
    calendars: Iterable[Calendar | str],
    window_start: datetime | str,
    window_end: datetime | str,
    http_client: httpx.AsyncClient | None = None,
    config: ClientConfig | None = None,
) -> list[BusyEvent]:
    """Get every busy interval intersecting a window, sorted by start."""
    async with Client(credentials, http_client, config) as client:
        return await client.get_busy_events(calendars, window_start, window_end)


async def create_booking(
    credentials: Credentials,
    calendar_url: str,
    event: NewEvent,
    http_client: httpx.AsyncClient | None = None,
    config: ClientConfig | None = None,
) -> BookingResult:
    """Create a new event in the given calendar."""
    async with Client(credentials, http_client, config) as client:
        return await client.create_booking(calendar_url, event)
