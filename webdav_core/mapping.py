"""Conversion of multistatus records into FileInfo models."""

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any
from urllib.parse import unquote, urlsplit

from .models import FileInfo, ResourceKind
from .multistatus import RawMultistatusRecord, local_name


def normalize_path(path: str) -> str:
    """Leading ``/``, no trailing ``/`` (except for the root itself)."""
    return "/" + path.strip("/")


def href_to_path(href: str, base_path: str = "/") -> str:
    """Turn a raw href into a decoded path relative to the base URL's path.

    Servers return hrefs either as absolute paths (``/dav/files/u/a.txt``)
    or as full URLs; both are reduced to the path the caller would use,
    e.g. ``/a.txt`` for a base URL of ``https://host/dav/files/u/``.
    """
    if "://" in href:
        href = urlsplit(href).path

    path = unquote(href)
    base = unquote(base_path).rstrip("/")
    if base and (path == base or path.startswith(base + "/")):
        path = path[len(base) :]

    return normalize_path(path)


def is_collection(resourcetype: Any) -> bool:
    """True when the resourcetype value carries a collection marker."""
    if not isinstance(resourcetype, ET.Element):
        return False
    return any(local_name(child.tag) == "collection" for child in resourcetype)


def parse_content_length(value: Any) -> int:
    try:
        size = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return size if size >= 0 else 0


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def record_to_file_info(record: RawMultistatusRecord, base_path: str = "/") -> FileInfo:
    """Map one record to a FileInfo.

    Never raises: missing or malformed fields fall back to defaults.
    """
    properties = record.properties
    path = href_to_path(record.href, base_path)

    basename = path.rsplit("/", 1)[-1]
    if not basename:
        basename = _optional_text(properties.get("displayname")) or ""

    last_modified = _optional_text(properties.get("getlastmodified"))
    if last_modified is None:
        last_modified = format_datetime(datetime.now(timezone.utc), usegmt=True)

    return FileInfo(
        path=path,
        basename=basename,
        kind=(
            ResourceKind.DIRECTORY
            if is_collection(properties.get("resourcetype"))
            else ResourceKind.FILE
        ),
        size=parse_content_length(properties.get("getcontentlength")),
        last_modified=last_modified,
        mime_type=_optional_text(properties.get("getcontenttype")),
        etag=_optional_text(properties.get("getetag")),
    )
