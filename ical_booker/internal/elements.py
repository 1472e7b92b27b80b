"""WebDAV and CalDAV XML elements."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import ParseResult as URL, urlparse

from lxml import etree

# WebDAV namespace
NAMESPACE = "DAV:"
# CalDAV namespace (RFC 4791)
CALDAV_NAMESPACE = "urn:ietf:params:xml:ns:caldav"
NSMAP = {"D": NAMESPACE, "C": CALDAV_NAMESPACE}

# Common XML names
RESOURCE_TYPE = "{DAV:}resourcetype"
DISPLAY_NAME = "{DAV:}displayname"
CURRENT_USER_PRINCIPAL = "{DAV:}current-user-principal"
HREF = "{DAV:}href"
# RFC 4791 puts calendar-home-set in the CalDAV namespace; replies are read
# by local name, so servers answering with DAV:calendar-home-set also work
CALENDAR_HOME_SET = f"{{{CALDAV_NAMESPACE}}}calendar-home-set"


def local_name(element: etree._Element) -> str:
    """Return the tag of an element without its namespace."""
    return etree.QName(element).localname


def parse_xml(content: bytes | str) -> etree._Element:
    """Parse a response body.

    Raises:
        ValueError: If the body is empty or not well-formed XML
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    if not content.strip():
        raise ValueError("caldav: empty XML body")
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(content, parser)
    except etree.XMLSyntaxError as e:
        raise ValueError(f"caldav: malformed XML body: {e}") from e


@dataclass
class Status:
    """HTTP status for WebDAV responses."""

    code: int
    text: str = ""

    @staticmethod
    def from_string(s: str) -> Status:
        """Unmarshal status from text."""
        if not s:
            return Status(code=0)

        parts = s.strip().split(" ", 2)
        if len(parts) < 2:
            raise ValueError(f"caldav: invalid HTTP status {s!r}: expected at least 2 fields")

        try:
            code = int(parts[1])
        except ValueError as e:
            raise ValueError(
                f"caldav: invalid HTTP status {s!r}: failed to parse code: {e}"
            ) from e

        return Status(code=code, text=parts[2] if len(parts) == 3 else "")

    def ok(self) -> bool:
        """Whether the status is 2xx.

        A missing status is treated as success.
        """
        return self.code == 0 or self.code // 100 == 2


@dataclass
class Href:
    """WebDAV href element."""

    url: URL

    def __str__(self) -> str:
        return self.url.geturl()

    @staticmethod
    def from_string(s: str) -> Href:
        """Parse href from string."""
        return Href(url=urlparse(s.strip()))

    @staticmethod
    def from_parent(element: etree._Element | None) -> Href | None:
        """Read the first DAV:href child of a property element."""
        if element is None:
            return None
        href_el = element.find(HREF)
        if href_el is None or not (href_el.text or "").strip():
            return None
        return Href.from_string(href_el.text)


@dataclass
class Prop:
    """WebDAV prop element."""

    raw: list[etree._Element] = field(default_factory=list)

    def to_xml(self) -> etree._Element:
        """Convert to XML element."""
        prop = etree.Element(f"{{{NAMESPACE}}}prop", nsmap=NSMAP)
        for elem in self.raw:
            prop.append(elem)
        return prop

    @staticmethod
    def from_xml(element: etree._Element) -> Prop:
        """Parse from XML element."""
        return Prop(raw=list(element))

    def get(self, tag: str) -> etree._Element | None:
        """Get a property by tag name."""
        for elem in self.raw:
            if elem.tag == tag:
                return elem
        return None

    def find_local(self, name: str) -> etree._Element | None:
        """Get a property by local name, ignoring its namespace."""
        for elem in self.raw:
            if isinstance(elem.tag, str) and local_name(elem) == name:
                return elem
        return None


@dataclass
class PropStat:
    """WebDAV propstat element."""

    prop: Prop
    status: Status

    @staticmethod
    def from_xml(element: etree._Element) -> PropStat:
        """Parse from XML element."""
        prop_el = element.find(f"{{{NAMESPACE}}}prop")
        prop = Prop.from_xml(prop_el) if prop_el is not None else Prop()

        status_el = element.find(f"{{{NAMESPACE}}}status")
        status_text = status_el.text if status_el is not None else ""
        status = Status.from_string(status_text or "")

        return PropStat(prop=prop, status=status)


@dataclass
class Response:
    """WebDAV response element."""

    hrefs: list[Href] = field(default_factory=list)
    propstats: list[PropStat] = field(default_factory=list)

    @staticmethod
    def from_xml(element: etree._Element) -> Response:
        """Parse from XML element."""
        hrefs = []
        for href_el in element.findall(HREF):
            if href_el.text and href_el.text.strip():
                hrefs.append(Href.from_string(href_el.text))

        propstats = []
        for ps_el in element.findall(f"{{{NAMESPACE}}}propstat"):
            propstats.append(PropStat.from_xml(ps_el))

        return Response(hrefs=hrefs, propstats=propstats)

    def href(self) -> str:
        """Get the first href of the response, or an empty string."""
        return str(self.hrefs[0]) if self.hrefs else ""

    def get_prop(self, tag: str) -> etree._Element | None:
        """Look up a property in the successful propstats of this response."""
        for propstat in self.propstats:
            if not propstat.status.ok():
                continue
            found = propstat.prop.get(tag)
            if found is not None:
                return found
        return None

    def find_prop_local(self, name: str) -> etree._Element | None:
        """Like get_prop, but matches on the local name only."""
        for propstat in self.propstats:
            if not propstat.status.ok():
                continue
            found = propstat.prop.find_local(name)
            if found is not None:
                return found
        return None


@dataclass
class MultiStatus:
    """WebDAV multistatus response."""

    responses: list[Response] = field(default_factory=list)

    @staticmethod
    def from_xml(element: etree._Element) -> MultiStatus:
        """Parse from XML element."""
        if element.tag != f"{{{NAMESPACE}}}multistatus":
            raise ValueError(f"caldav: expected multistatus, got {element.tag}")

        responses = []
        for resp_el in element.findall(f"{{{NAMESPACE}}}response"):
            responses.append(Response.from_xml(resp_el))

        return MultiStatus(responses=responses)

    @staticmethod
    def from_bytes(content: bytes | str) -> MultiStatus:
        """Parse a multistatus response body."""
        return MultiStatus.from_xml(parse_xml(content))


@dataclass
class PropFind:
    """WebDAV PROPFIND request."""

    prop: Prop | None = None

    def to_xml(self) -> etree._Element:
        """Convert to XML element."""
        pf = etree.Element(f"{{{NAMESPACE}}}propfind", nsmap=NSMAP)

        if self.prop is not None:
            pf.append(self.prop.to_xml())

        return pf

    @staticmethod
    def of(*tags: str) -> PropFind:
        """Build a PROPFIND requesting the given properties."""
        return PropFind(prop=Prop(raw=[etree.Element(tag) for tag in tags]))

