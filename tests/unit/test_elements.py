"""Tests for internal elements."""

import pytest
from lxml import etree

from ical_booker.internal import Depth, PropFind, TransportError, depth_to_string
from ical_booker.internal import elements as elem
from ical_booker.internal.elements import Href, MultiStatus, Status

PRINCIPAL_MULTISTATUS_STR = """<?xml version="1.0" encoding="utf-8" ?>
<multistatus xmlns="DAV:">
  <response>
    <href>/</href>
    <propstat>
      <prop>
        <current-user-principal><href>/123/principal/</href></current-user-principal>
      </prop>
      <status>HTTP/1.1 200 OK</status>
    </propstat>
    <propstat>
      <prop><displayname/></prop>
      <status>HTTP/1.1 404 Not Found</status>
    </propstat>
  </response>
</multistatus>"""


def test_default_namespace_and_failed_propstats():
    """Test parsing with a default namespace; 404 propstats are ignored."""
    ms = MultiStatus.from_bytes(PRINCIPAL_MULTISTATUS_STR)

    (resp,) = ms.responses
    href = Href.from_parent(resp.get_prop(elem.CURRENT_USER_PRINCIPAL))
    assert str(href) == "/123/principal/"
    assert resp.href() == "/"
    assert resp.get_prop(elem.DISPLAY_NAME) is None


def test_malformed_body_raises_value_error():
    with pytest.raises(ValueError):
        MultiStatus.from_bytes(b"<multistatus xmlns='DAV:'><response>")
    with pytest.raises(ValueError):
        MultiStatus.from_bytes(b"")
    with pytest.raises(ValueError, match="expected multistatus"):
        MultiStatus.from_bytes(b"<error xmlns='DAV:'/>")


def test_status_from_string():
    assert Status.from_string("HTTP/1.1 200 OK").code == 200
    assert Status.from_string("HTTP/1.1 207").code == 207
    assert Status.from_string("").ok()
    assert not Status.from_string("HTTP/1.1 404 Not Found").ok()
    with pytest.raises(ValueError):
        Status.from_string("HTTP/1.1 abc Bad")


def test_propfind_serialization():
    """Test that PROPFIND bodies use the DAV and CalDAV namespaces."""
    root = PropFind.of(elem.DISPLAY_NAME, elem.CALENDAR_HOME_SET).to_xml()
    xml_str = etree.tostring(root, encoding="unicode")

    assert root.tag == "{DAV:}propfind"
    assert [child.tag for child in root.find("{DAV:}prop")] == [
        elem.DISPLAY_NAME,
        elem.CALENDAR_HOME_SET,
    ]
    assert 'xmlns:C="urn:ietf:params:xml:ns:caldav"' in xml_str


def test_depth_to_string():
    assert depth_to_string(Depth.ZERO) == "0"
    assert depth_to_string(Depth.ONE) == "1"
    with pytest.raises(ValueError):
        depth_to_string(-1)


def test_transport_error_message():
    err = TransportError(404, Exception("no such calendar"), url="https://example.com/x/")
    assert str(err) == "https://example.com/x/: 404 Not Found: no such calendar"
    assert str(TransportError(599)) == "599 Unknown"
