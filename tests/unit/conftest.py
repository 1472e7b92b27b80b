"""Shared fixtures: a scripted in-memory CalDAV server built on httpx.MockTransport."""

from __future__ import annotations

from typing import Awaitable, Callable

import httpx
import pytest
import pytest_asyncio

from ical_booker import Credentials

SERVER = "https://caldav.example.com"

Handler = Callable[[httpx.Request], "httpx.Response | Awaitable[httpx.Response]"]


def multistatus(*responses: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<d:multistatus xmlns:d="DAV:" xmlns:cal="urn:ietf:params:xml:ns:caldav">'
        + "".join(responses)
        + "</d:multistatus>"
    )


def prop_response(href: str, props: str, status: str = "HTTP/1.1 200 OK") -> str:
    return (
        f"<d:response><d:href>{href}</d:href>"
        f"<d:propstat><d:prop>{props}</d:prop><d:status>{status}</d:status></d:propstat>"
        "</d:response>"
    )


def xml_response(body: str, status_code: int = 207) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=body.encode("utf-8"),
        headers={"Content-Type": "application/xml; charset=utf-8"},
    )


class FakeServer:
    """Routes requests by (method, url) and records every request it sees."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, body: str = "", status_code: int = 207) -> None:
        """Answer with a fixed XML body."""
        self.route(method, url, lambda request: xml_response(body, status_code))

    def route(self, method: str, url: str, handler: Handler) -> None:
        """Answer with a custom (possibly async) handler."""
        self.routes[(method, str(httpx.URL(url)))] = handler

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, str(request.url)))
        if handler is None:
            return httpx.Response(404, text="not found")
        result = handler(request)
        if not isinstance(result, httpx.Response):
            result = await result
        return result

    def calls(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(principal=SERVER, username="jane.doe@example.com", password="app-pass")


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def http_client(server: FakeServer):
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handle))
    yield client
    await client.aclose()
