"""Internal HTTP client for CalDAV requests."""

from __future__ import annotations

from urllib.parse import urljoin

import httpx
from lxml import etree

from ..config import ClientConfig, Credentials, basic_auth
from ..debug import log_request, log_response
from .elements import MultiStatus, PropFind
from .internal import Depth, depth_to_string, is_success, transport_error_from_response

XML_CONTENT_TYPE = "application/xml; charset=utf-8"


class Client:
    """Authenticated HTTP client bound to one set of credentials."""

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient | None = None,
        config: ClientConfig | None = None,
    ):
        """Initialize client.

        Args:
            credentials: Account the requests are authenticated as
            http_client: HTTP client to use (creates default if None)
            config: Timeout and logging settings
        """
        self.credentials = credentials
        self.config = config or ClientConfig()
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=self.config.timeout)

    def resolve_href(self, href: str, base: str | None = None) -> str:
        """Resolve an href against a base URL (the principal URL by default)."""
        return urljoin(base or self.credentials.principal, href)

    async def request(
        self,
        method: str,
        url: str,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an authenticated HTTP request.

        The status code is not checked; see ``checked_request``.

        Raises:
            httpx.TransportError: If the server cannot be reached
        """
        req_headers = {
            "Authorization": basic_auth(self.credentials),
            "User-Agent": self.config.user_agent,
        }
        req_headers.update(headers or {})

        if self.config.debug:
            log_request(method, url, req_headers, content)

        resp = await self.http_client.request(method, url, content=content, headers=req_headers)

        if self.config.debug:
            log_response(resp.status_code, resp.headers, resp.content)

        return resp

    async def checked_request(
        self,
        method: str,
        url: str,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a request that must succeed.

        Raises:
            TransportError: If the response status is not 2xx
        """
        resp = await self.request(method, url, content=content, headers=headers)
        if not is_success(resp.status_code):
            raise transport_error_from_response(
                resp.status_code, resp.headers.get("content-type", "text/plain"), resp.text, url
            )
        return resp

    async def xml_request(
        self,
        method: str,
        url: str,
        xml_obj: etree._Element | None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an unchecked request with an XML body.

        Args:
            method: HTTP method
            url: Request URL
            xml_obj: XML object to send, or None for an empty body
            headers: Additional request headers
        """
        content = None
        if xml_obj is not None:
            content = etree.tostring(
                xml_obj, encoding="utf-8", xml_declaration=True, pretty_print=False
            )

        req_headers = dict(headers or {})
        req_headers["Content-Type"] = XML_CONTENT_TYPE

        return await self.request(method, url, content=content, headers=req_headers)

    async def propfind(
        self, url: str, depth: Depth, propfind: PropFind | None = None
    ) -> httpx.Response:
        """Perform a PROPFIND request without checking the status.

        Args:
            url: Resource URL
            depth: Depth header value
            propfind: PROPFIND body; None sends an empty body
        """
        headers = {"Depth": depth_to_string(depth)}
        xml_elem = propfind.to_xml() if propfind is not None else None
        return await self.xml_request("PROPFIND", url, xml_elem, headers=headers)

    async def propfind_multistatus(
        self, url: str, depth: Depth, propfind: PropFind
    ) -> MultiStatus:
        """Perform a PROPFIND request that must succeed and parse the result.

        Raises:
            TransportError: If the response status is not 2xx
            ValueError: If the body is not a multistatus document
        """
        resp = await self.propfind(url, depth, propfind)
        if not is_success(resp.status_code):
            raise transport_error_from_response(
                resp.status_code, resp.headers.get("content-type", "text/plain"), resp.text, url
            )
        return MultiStatus.from_bytes(resp.content)

    async def report(
        self, url: str, xml_obj: etree._Element, depth: Depth = Depth.ONE
    ) -> httpx.Response:
        """Perform a REPORT request without checking the status."""
        headers = {"Depth": depth_to_string(depth)}
        return await self.xml_request("REPORT", url, xml_obj, headers=headers)

    async def put(self, url: str, content: bytes, content_type: str) -> httpx.Response:
        """Upload a resource.

        Raises:
            TransportError: If the response status is not 2xx
        """
        return await self.checked_request(
            "PUT", url, content=content, headers={"Content-Type": content_type}
        )

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http_client:
            await self.http_client.aclose()
