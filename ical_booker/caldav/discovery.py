"""Calendar discovery.

Discovery runs in three sequential steps: resolve the current user
principal, locate the calendar home (asking the server first, then probing
well-known layouts), and list the calendar collections inside the home.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterator
from urllib.parse import urljoin, urlparse

from ..internal import DiscoveryError, MultiStatus
from ..internal import elements as elem
from .caldav import Calendar

if TYPE_CHECKING:
    from ..client import Client

logger = logging.getLogger(__name__)

# A leaf calendar: last path segment is a single hex/UUID token plus "/".
# This drops the home itself and inbox/outbox/notification collections.
CALENDAR_HREF = re.compile(r"/[A-Fa-f0-9-]+/$")

PRINCIPAL_USER_ID = re.compile(r"/(\d+)/principal")


def user_id_from_principal(principal_url: str, username: str) -> str:
    """Numeric account id from an iCloud-style principal, else the e-mail local part."""
    match = PRINCIPAL_USER_ID.search(urlparse(principal_url).path)
    if match:
        return match.group(1)
    return email_local_part(username)


def email_local_part(username: str) -> str:
    return username.split("@")[0]


def calendar_home_candidates(principal_url: str, base_url: str, username: str) -> Iterator[str]:
    """Yield calendar home URLs to probe, most likely first.

    Args:
        principal_url: Absolute URL of the current user principal
        base_url: Configured server URL
        username: Account username, usually an e-mail address
    """
    # Standard layout: calendars/ below the principal
    yield urljoin(principal_url, "./calendars/")
    # iCloud layout keyed by the numeric id in the principal
    yield urljoin(base_url, f"/{user_id_from_principal(principal_url, username)}/calendars/")
    # iCloud layout keyed by the e-mail local part
    yield urljoin(base_url, f"/{email_local_part(username)}/calendars/")


async def probe_calendar_home(client: Client, candidates: Iterator[str]) -> str:
    """Return the first candidate that answers a Depth 1 PROPFIND with 2xx.

    Candidates are probed one at a time, in order, and probing stops at the
    first success.

    Raises:
        DiscoveryError: If no candidate succeeds; lists every URL tried
    """
    attempted: list[str] = []
    for url in candidates:
        attempted.append(url)
        if await client.probe_collection(url):
            return url if url.endswith("/") else f"{url}/"

    raise DiscoveryError(
        f"calendar-home-set not found on server. Tried: {', '.join(attempted)}",
        attempted=attempted,
    )


async def find_calendar_home(client: Client, principal_url: str) -> str:
    """Locate the calendar home of a principal.

    Raises:
        DiscoveryError: If neither the server nor any fallback yields a home
    """
    home_url = await client.find_calendar_home_set(principal_url)
    if home_url:
        return home_url

    credentials = client.credentials
    candidates = calendar_home_candidates(principal_url, credentials.principal, credentials.username)
    home_url = await probe_calendar_home(client, candidates)
    logger.warning(f"calendar-home-set missing; using fallback: {home_url}")
    return home_url


def is_calendar_href(href: str) -> bool:
    return bool(CALENDAR_HREF.search(urlparse(href).path))


def calendars_from_multistatus(ms: MultiStatus, base_url: str) -> list[Calendar]:
    """Pick the leaf calendar collections out of a calendar home listing."""
    calendars: list[Calendar] = []
    seen: set[str] = set()

    for resp in ms.responses:
        href = resp.href()
        name_elem = resp.get_prop(elem.DISPLAY_NAME)
        name = (name_elem.text or "").strip() if name_elem is not None else ""

        if not name or not href or not is_calendar_href(href):
            continue

        url = urljoin(base_url, href)
        if url in seen:
            continue
        seen.add(url)
        calendars.append(Calendar(display_name=name, url=url))

    return calendars


async def discover(client: Client) -> list[Calendar]:
    """Discover all calendar collections of the client's account.

    Raises:
        DiscoveryError: If the principal or calendar home cannot be found,
            or the calendar listing fails
        TransportError: If the principal or home-set request fails
    """
    principal_url = await client.find_current_user_principal()
    logger.debug(f"Principal: {principal_url}")

    home_url = await find_calendar_home(client, principal_url)
    logger.debug(f"Calendar home: {home_url}")

    ms = await client.list_collections(home_url)
    calendars = calendars_from_multistatus(ms, client.credentials.principal)

    logger.info(f"Found {len(calendars)} calendars: {[c.display_name for c in calendars]}")
    return calendars
