"""Tests for calendar discovery."""

import base64

import httpx
import pytest
from conftest import SERVER, multistatus, prop_response

from ical_booker import Client, DiscoveryError, TransportError, discover_calendars
from ical_booker.caldav.discovery import (
    calendar_home_candidates,
    calendars_from_multistatus,
    is_calendar_href,
)
from ical_booker.internal import MultiStatus

PRINCIPAL_HREF = "/123456/principal/"
HOME_HREF = "/123456/calendars/"

PRINCIPAL_XML = multistatus(
    prop_response(
        "/",
        f"<d:current-user-principal><d:href>{PRINCIPAL_HREF}</d:href></d:current-user-principal>",
    )
)

HOME_SET_XML = multistatus(
    prop_response(
        PRINCIPAL_HREF,
        f"<cal:calendar-home-set><d:href>{HOME_HREF}</d:href></cal:calendar-home-set>",
    )
)

# Servers that do not know the property report it with a 404 propstat
HOME_SET_MISSING_XML = multistatus(
    prop_response(
        PRINCIPAL_HREF,
        "<cal:calendar-home-set/>",
        status="HTTP/1.1 404 Not Found",
    )
)

# Home collection, inbox and two real calendars
LISTING_XML = multistatus(
    prop_response(
        HOME_HREF,
        "<d:displayname>Home</d:displayname><d:resourcetype><d:collection/></d:resourcetype>",
    ),
    prop_response(
        f"{HOME_HREF}inbox/",
        "<d:displayname>Inbox</d:displayname>"
        "<d:resourcetype><d:collection/><cal:schedule-inbox/></d:resourcetype>",
    ),
    prop_response(
        f"{HOME_HREF}A1B2C3D4-0000-1111-2222-333344445555/",
        "<d:displayname>Work</d:displayname>"
        "<d:resourcetype><d:collection/><cal:calendar/></d:resourcetype>",
    ),
    prop_response(
        f"{HOME_HREF}deadbeef-01/",
        "<d:displayname> Personal </d:displayname>"
        "<d:resourcetype><d:collection/><cal:calendar/></d:resourcetype>",
    ),
)

FALLBACK_CANDIDATES = [
    f"{SERVER}/123456/principal/calendars/",
    f"{SERVER}/123456/calendars/",
    f"{SERVER}/jane.doe/calendars/",
]


def probes(server):
    """PROPFIND requests with an empty body are calendar home probes."""
    return [r for r in server.calls("PROPFIND") if r.content == b""]


@pytest.mark.asyncio
async def test_discover_with_calendar_home_set(server, http_client, credentials):
    """Test the normal path: principal, home-set, listing."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_XML)
    server.add("PROPFIND", f"{SERVER}{HOME_HREF}", LISTING_XML)

    calendars = await discover_calendars(credentials, http_client=http_client)

    assert [(c.display_name, c.url) for c in calendars] == [
        ("Work", f"{SERVER}{HOME_HREF}A1B2C3D4-0000-1111-2222-333344445555/"),
        ("Personal", f"{SERVER}{HOME_HREF}deadbeef-01/"),
    ]

    # No fallback probing when the server reports the home
    assert probes(server) == []
    assert len(server.requests) == 3


@pytest.mark.asyncio
async def test_discover_sends_basic_auth_and_depth(server, http_client, credentials):
    """Test request headers for each discovery step."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_XML)
    server.add("PROPFIND", f"{SERVER}{HOME_HREF}", LISTING_XML)

    await discover_calendars(credentials, http_client=http_client)

    expected_auth = "Basic " + base64.b64encode(b"jane.doe@example.com:app-pass").decode()
    for request in server.requests:
        assert request.headers["Authorization"] == expected_auth
        assert request.headers["Content-Type"].startswith("application/xml")

    assert [r.headers["Depth"] for r in server.requests] == ["0", "0", "1"]
    assert b"current-user-principal" in server.requests[0].content
    assert b"calendar-home-set" in server.requests[1].content
    assert b"displayname" in server.requests[2].content
    assert b"resourcetype" in server.requests[2].content


@pytest.mark.asyncio
async def test_fallback_probes_in_order_until_first_success(server, http_client, credentials):
    """Test that candidates 1 and 2 fail, 3 succeeds and nothing else is probed."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_MISSING_XML)

    def home(request):
        if request.content == b"":
            return httpx.Response(207, content=multistatus().encode())
        return httpx.Response(207, content=LISTING_XML.replace(HOME_HREF, "/jane.doe/calendars/").encode())

    server.route("PROPFIND", FALLBACK_CANDIDATES[0], lambda r: httpx.Response(404))
    server.route("PROPFIND", FALLBACK_CANDIDATES[1], lambda r: httpx.Response(403))
    server.route("PROPFIND", FALLBACK_CANDIDATES[2], home)

    calendars = await discover_calendars(credentials, http_client=http_client)

    probed = probes(server)
    assert [str(r.url) for r in probed] == FALLBACK_CANDIDATES
    assert all(r.headers["Depth"] == "1" for r in probed)

    # Listing went to the accepted home
    assert str(server.requests[-1].url) == FALLBACK_CANDIDATES[2]
    assert [c.display_name for c in calendars] == ["Work", "Personal"]


@pytest.mark.asyncio
async def test_fallback_stops_at_first_success(server, http_client, credentials):
    """Test that later candidates are never probed once one succeeds."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_MISSING_XML)
    server.add("PROPFIND", FALLBACK_CANDIDATES[0], LISTING_XML)

    await discover_calendars(credentials, http_client=http_client)

    assert [str(r.url) for r in probes(server)] == FALLBACK_CANDIDATES[:1]


@pytest.mark.asyncio
async def test_fallback_survives_connection_errors(server, http_client, credentials):
    """Test that a probe failing at the transport level counts as a failed probe."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_MISSING_XML)

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    server.route("PROPFIND", FALLBACK_CANDIDATES[0], refuse)
    server.add("PROPFIND", FALLBACK_CANDIDATES[1], LISTING_XML)

    calendars = await discover_calendars(credentials, http_client=http_client)

    assert len(calendars) == 2


@pytest.mark.asyncio
async def test_fallback_exhausted_lists_attempted_urls(server, http_client, credentials):
    """Test the error raised when no candidate works."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_MISSING_XML)

    with pytest.raises(DiscoveryError) as exc_info:
        await discover_calendars(credentials, http_client=http_client)

    assert exc_info.value.attempted == FALLBACK_CANDIDATES
    for url in FALLBACK_CANDIDATES:
        assert url in str(exc_info.value)


@pytest.mark.asyncio
async def test_principal_not_found(server, http_client, credentials):
    """Test a multistatus without current-user-principal."""
    server.add("PROPFIND", SERVER, multistatus(prop_response("/", "<d:displayname>x</d:displayname>")))

    with pytest.raises(DiscoveryError, match="principal not found"):
        await discover_calendars(credentials, http_client=http_client)


@pytest.mark.asyncio
async def test_principal_unauthorized_raises_transport_error(server, http_client, credentials):
    """Test that a non-2xx principal lookup propagates as TransportError."""
    server.route("PROPFIND", SERVER, lambda r: httpx.Response(401, text="Unauthorized"))

    with pytest.raises(TransportError) as exc_info:
        await discover_calendars(credentials, http_client=http_client)

    assert exc_info.value.code == 401


@pytest.mark.asyncio
async def test_listing_failure_carries_status(server, http_client, credentials):
    """Test that a failed listing raises DiscoveryError with the status code."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_XML)
    server.route("PROPFIND", f"{SERVER}{HOME_HREF}", lambda r: httpx.Response(500))

    with pytest.raises(DiscoveryError) as exc_info:
        await discover_calendars(credentials, http_client=http_client)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_empty_home_is_not_an_error(server, http_client, credentials):
    """Test that an account without calendars yields an empty list."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add("PROPFIND", f"{SERVER}{PRINCIPAL_HREF}", HOME_SET_XML)
    server.add("PROPFIND", f"{SERVER}{HOME_HREF}", multistatus())

    async with Client(credentials, http_client=http_client) as client:
        assert await client.discover_calendars() == []


def test_listing_filter_skips_blank_names_and_duplicates():
    """Test the collection filter on its own."""
    from lxml import etree

    xml = multistatus(
        prop_response("/1/calendars/abc123/", "<d:displayname>   </d:displayname>"),
        prop_response("/1/calendars/abc124/", "<d:resourcetype/>"),
        prop_response("/1/calendars/abc125/", "<d:displayname>Team</d:displayname>"),
        prop_response("/1/calendars/abc125/", "<d:displayname>Team again</d:displayname>"),
        prop_response(
            "/1/calendars/abc126/",
            "<d:displayname>Hidden</d:displayname>",
            status="HTTP/1.1 404 Not Found",
        ),
    )
    ms = MultiStatus.from_xml(etree.fromstring(xml.encode()))

    calendars = calendars_from_multistatus(ms, SERVER)

    assert [(c.display_name, c.url) for c in calendars] == [
        ("Team", f"{SERVER}/1/calendars/abc125/")
    ]


def test_is_calendar_href():
    """Test which hrefs count as leaf calendars."""
    assert is_calendar_href("/123/calendars/0A1B2C3D-4E5F-6789-ABCD-EF0123456789/")
    assert is_calendar_href("https://p55-caldav.icloud.com/123/calendars/deadbeef/")
    assert not is_calendar_href("/123/calendars/")
    assert not is_calendar_href("/123/calendars/inbox/")
    assert not is_calendar_href("/123/calendars/outbox/")
    assert not is_calendar_href("/123/calendars/notification/")
    assert not is_calendar_href("/123/calendars/deadbeef")


def test_calendar_home_candidates_order():
    """Test candidate generation for numeric and e-mail based principals."""
    numeric = list(
        calendar_home_candidates(f"{SERVER}/123456/principal/", SERVER, "jane.doe@example.com")
    )
    assert numeric == FALLBACK_CANDIDATES

    by_email = list(
        calendar_home_candidates(f"{SERVER}/principals/jane/", SERVER, "jane.doe@example.com")
    )
    assert by_email == [
        f"{SERVER}/principals/jane/calendars/",
        f"{SERVER}/jane.doe/calendars/",
        f"{SERVER}/jane.doe/calendars/",
    ]


@pytest.mark.asyncio
async def test_home_set_in_dav_namespace_is_accepted(server, http_client, credentials):
    """Test servers that answer with DAV:calendar-home-set instead of the CalDAV name."""
    server.add("PROPFIND", SERVER, PRINCIPAL_XML)
    server.add(
        "PROPFIND",
        f"{SERVER}{PRINCIPAL_HREF}",
        multistatus(
            prop_response(
                PRINCIPAL_HREF,
                f"<d:calendar-home-set><d:href>{HOME_HREF}</d:href></d:calendar-home-set>",
            )
        ),
    )
    server.add("PROPFIND", f"{SERVER}{HOME_HREF}", LISTING_XML)

    calendars = await discover_calendars(credentials, http_client=http_client)

    assert [c.display_name for c in calendars] == ["Work", "Personal"]
    assert probes(server) == []
    assert b"urn:ietf:params:xml:ns:caldav" in server.requests[1].content
