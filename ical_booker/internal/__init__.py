"""Internal helpers shared by the CalDAV client."""

from .client import Client
from .elements import (
    CALDAV_NAMESPACE,
    NAMESPACE,
    Href,
    MultiStatus,
    Prop,
    PropFind,
    PropStat,
    Response,
    Status,
)
from .internal import (
    CalDAVError,
    Depth,
    DiscoveryError,
    TransportError,
    depth_to_string,
    is_success,
)

__all__ = [
    "Client",
    "CALDAV_NAMESPACE",
    "NAMESPACE",
    "Href",
    "MultiStatus",
    "Prop",
    "PropFind",
    "PropStat",
    "Response",
    "Status",
    "CalDAVError",
    "Depth",
    "DiscoveryError",
    "TransportError",
    "depth_to_string",
    "is_success",
]
