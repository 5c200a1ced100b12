"""Multistatus (RFC 4918 §13) parsing with namespace normalization.

WebDAV servers disagree on how they spell the ``DAV:`` namespace: most bind
it to ``d:`` (Nextcloud/ownCloud), some to ``D:``, some declare it as the
default namespace, and a few emit prefixes they never declare. This module
hides all of that behind a flat, prefix-free property map per response.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union
from xml.parsers import expat

from .errors import ParseError

logger = logging.getLogger(__name__)

DAV_NAMESPACE = "DAV:"

# Tried in this order for every element lookup
DAV_PREFIXES = ("{DAV:}", "d:", "D:", "")

PROPERTY_NAMES = (
    "resourcetype",
    "getcontentlength",
    "getlastmodified",
    "getcontenttype",
    "getetag",
    "displayname",
)

DEFAULT_STATUS = "HTTP/1.1 200 OK"

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8" ?>
<d:propfind xmlns:d="DAV:">
    <d:prop>
        <d:resourcetype/>
        <d:getcontentlength/>
        <d:getlastmodified/>
        <d:getcontenttype/>
        <d:getetag/>
        <d:displayname/>
    </d:prop>
</d:propfind>"""


@dataclass(frozen=True)
class RawMultistatusRecord:
    """One ``response`` element of a multistatus document.

    ``href`` is still percent-encoded. ``properties`` maps the prefix-free
    property name to its text, or to the element itself when the property
    has child elements (e.g. ``resourcetype``).
    """

    href: str
    properties: dict[str, Any] = field(default_factory=dict)
    status: str = DEFAULT_STATUS


def local_name(tag: str) -> str:
    """Strip ``{namespace}`` or ``prefix:`` from a tag."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag.split(":", 1)[-1]


def find_dav_children(element: ET.Element, name: str) -> List[ET.Element]:
    """Children named ``name`` under any DAV: spelling, in document order."""
    tags = {prefix + name for prefix in DAV_PREFIXES}
    return [child for child in element if child.tag in tags]


def find_dav_child(element: ET.Element, name: str) -> Optional[ET.Element]:
    """First child named ``name``, trying the DAV: spellings in priority order."""
    for prefix in DAV_PREFIXES:
        for child in element:
            if child.tag == prefix + name:
                return child
    return None


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None:
        return None
    return (element.text or "").strip()


def _parse_without_namespaces(content: bytes) -> ET.Element:
    """Build a tree keeping literal ``prefix:name`` tags.

    Used for documents whose prefixes are never declared, which a
    namespace-aware parser rejects.
    """
    builder = ET.TreeBuilder()
    parser = expat.ParserCreate()
    parser.StartElementHandler = builder.start
    parser.EndElementHandler = builder.end
    parser.CharacterDataHandler = builder.data
    parser.Parse(content, True)
    return builder.close()


def _parse_tree(content: bytes) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        if "unbound prefix" not in str(e):
            raise ParseError(f"Could not parse multistatus XML: {e}") from e
        logger.debug("Multistatus uses undeclared prefixes, parsing without namespaces")

    try:
        return _parse_without_namespaces(content)
    except expat.ExpatError as e:
        raise ParseError(f"Could not parse multistatus XML: {e}") from e


def _property_value(element: ET.Element) -> Union[str, ET.Element]:
    if len(element):
        return element
    return (element.text or "").strip()


def _select_propstat(propstats: List[ET.Element]) -> Optional[ET.Element]:
    """Pick the 2xx propstat block, falling back to the first one."""
    for propstat in propstats:
        status = _text(find_dav_child(propstat, "status")) or ""
        parts = status.split()
        if len(parts) >= 2 and parts[1].startswith("2"):
            return propstat
    return propstats[0] if propstats else None


def _extract_properties(prop: Optional[ET.Element]) -> dict[str, Any]:
    if prop is None:
        return {}

    properties: dict[str, Any] = {}
    # Each field may use its own spelling, even within one document
    for name in PROPERTY_NAMES:
        element = find_dav_child(prop, name)
        if element is not None:
            properties[name] = _property_value(element)

    # Keep vendor properties (oc:fileid, nc:has-preview, ...) by local name
    for child in prop:
        properties.setdefault(local_name(child.tag), _property_value(child))

    return properties


def _parse_response(response: ET.Element) -> RawMultistatusRecord:
    href = _text(find_dav_child(response, "href")) or ""

    propstat = _select_propstat(find_dav_children(response, "propstat"))
    if propstat is None:
        # e.g. <d:response><d:href/><d:status>HTTP/1.1 404 Not Found</d:status></d:response>
        status = _text(find_dav_child(response, "status")) or DEFAULT_STATUS
        return RawMultistatusRecord(href=href, properties={}, status=status)

    return RawMultistatusRecord(
        href=href,
        properties=_extract_properties(find_dav_child(propstat, "prop")),
        status=_text(find_dav_child(propstat, "status")) or DEFAULT_STATUS,
    )


def parse_multistatus(content: Union[bytes, str]) -> List[RawMultistatusRecord]:
    """Parse a multistatus body into records, in document order.

    Raises:
        ParseError: If the body is not XML or has no multistatus root
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    root = _parse_tree(content)

    if not any(root.tag == prefix + "multistatus" for prefix in DAV_PREFIXES):
        raise ParseError(
            f"Invalid WebDAV response: expected multistatus root, got '{root.tag}'"
        )

    records = [_parse_response(response) for response in find_dav_children(root, "response")]
    logger.debug(f"Parsed {len(records)} multistatus records")
    return records
