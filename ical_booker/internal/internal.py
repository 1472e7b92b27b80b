"""Low-level helpers and error types for the CalDAV client."""

from __future__ import annotations

from enum import IntEnum
from http import HTTPStatus


class Depth(IntEnum):
    """Depth indicates whether a request applies to the resource's members.

    Defined in RFC 4918 section 10.2.
    """

    ZERO = 0  # Request applies only to the resource
    ONE = 1  # Request applies to resource and its internal members only


def depth_to_string(d: Depth) -> str:
    """Format the depth."""
    if d == Depth.ZERO:
        return "0"
    elif d == Depth.ONE:
        return "1"
    else:
        raise ValueError("caldav: invalid Depth value")


def is_success(status_code: int) -> bool:
    """Check whether an HTTP status code is in the 2xx range."""
    return status_code // 100 == 2


class CalDAVError(Exception):
    """Base class for errors raised by this package."""


class TransportError(CalDAVError):
    """Non-2xx response to a request that must succeed."""

    def __init__(self, code: int, err: Exception | None = None, url: str = ""):
        self.code = code
        self.err = err
        self.url = url
        super().__init__(str(self))

    def __str__(self) -> str:
        try:
            text = HTTPStatus(self.code).phrase
        except ValueError:
            text = "Unknown"

        s = f"{self.code} {text}"
        if self.url:
            s = f"{self.url}: {s}"
        if self.err:
            return f"{s}: {self.err}"
        return s


class DiscoveryError(CalDAVError):
    """Calendar discovery could not complete.

    Attributes:
        attempted: URLs probed while looking for the calendar home
        status_code: HTTP status of the failing request, if any
    """

    def __init__(
        self,
        message: str,
        attempted: list[str] | None = None,
        status_code: int | None = None,
    ):
        self.attempted = list(attempted or [])
        self.status_code = status_code
        super().__init__(message)


def transport_error_from_response(
    status_code: int, content_type: str, text: str, url: str = ""
) -> TransportError:
    """Build a TransportError from a failed response, keeping a short body excerpt."""
    wrapped_err: Exception | None = None
    if content_type.startswith("text/") or "xml" in content_type:
        excerpt = text[:1024].strip()
        if excerpt:
            if len(text) > 1024:
                excerpt += " […]"
            wrapped_err = Exception(excerpt)
    return TransportError(status_code, wrapped_err, url=url)
