"""Debug logging utilities for the CalDAV client."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from lxml import etree

logger = logging.getLogger("ical_booker")
http_logger = logging.getLogger("ical_booker.http")


def format_xml(xml_bytes: bytes | str) -> str:
    """Format XML with proper indentation.

    Args:
        xml_bytes: XML content as bytes or string

    Returns:
        Pretty-formatted XML string
    """
    if isinstance(xml_bytes, str):
        xml_bytes = xml_bytes.encode("utf-8")

    try:
        parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False)
        root = etree.fromstring(xml_bytes, parser)
    except etree.XMLSyntaxError:
        # Not XML after all, show it as-is
        return xml_bytes.decode("utf-8", errors="replace")
    return etree.tostring(root, pretty_print=True, encoding="unicode")


def is_xml_content(content_type: str | None) -> bool:
    """Check if content type is XML.

    Args:
        content_type: Content-Type header value

    Returns:
        True if content type indicates XML
    """
    if not content_type:
        return False

    xml_types = ["application/xml", "text/xml"]
    return any(xml_type in content_type.lower() for xml_type in xml_types)


def _log_body(content_type: str, body: bytes) -> None:
    if is_xml_content(content_type):
        formatted = format_xml(body)
        for line in formatted.split("\n"):
            if line.strip():
                http_logger.debug(f"  {line}")
    else:
        body_preview = body[:400].decode("utf-8", errors="replace")
        http_logger.debug(f"  [{len(body)} bytes] {body_preview}")
        if len(body) > 400:
            http_logger.debug(f"  ... ({len(body) - 400} more bytes)")


def log_request(method: str, url: str, headers: Mapping[str, str], body: bytes | None) -> None:
    """Log an outgoing HTTP request.

    Args:
        method: HTTP method
        url: Request URL
        headers: Request headers
        body: Request body (if any)
    """
    http_logger.debug("=" * 80)
    http_logger.debug(f">>> {method} {url}")

    interesting_headers = ["Content-Type", "Depth", "Authorization"]
    for header in interesting_headers:
        value = headers.get(header)
        if value:
            if header == "Authorization":
                value = "[REDACTED]"
            http_logger.debug(f"  {header}: {value}")

    if body:
        http_logger.debug("-" * 80)
        _log_body(headers.get("Content-Type", ""), body)


def log_response(status_code: int, headers: Mapping[str, Any], body: bytes | None) -> None:
    """Log an incoming HTTP response.

    Args:
        status_code: HTTP status code
        headers: Response headers
        body: Response body (if any)
    """
    http_logger.debug(f"<<< {status_code}")

    for header in ["Content-Type", "Content-Length", "ETag", "DAV"]:
        value = headers.get(header.lower(), headers.get(header))
        if value:
            http_logger.debug(f"  {header}: {value}")

    if body:
        http_logger.debug("-" * 80)
        _log_body(headers.get("content-type", ""), body)

    http_logger.debug("=" * 80)


def setup_debug_logging() -> None:
    """Send package log records, including raw HTTP traffic, to stderr."""
    logger.setLevel(logging.DEBUG)

    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)

    # Simple format - just the message (since we format the logs ourselves)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False
