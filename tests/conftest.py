import hashlib
import posixpath
from typing import Any, AsyncGenerator
from urllib.parse import quote

import httpx
import pytest

from webdav_core.client import WebDAVClient, create_client

BASE_URL = "https://dav.example.com/remote.php/dav/files/alice"
BASE_PATH = "/remote.php/dav/files/alice"
LAST_MODIFIED = "Mon, 01 Jan 2024 00:00:00 GMT"


def _parent(path: str) -> str:
    return posixpath.dirname(path.rstrip("/")) or "/"


class FakeDAVServer:
    """In-memory WebDAV server served through ``httpx.MockTransport``.

    Resources are keyed by their path below ``base_path``. Every request is
    recorded, and failures can be injected per (method, path).
    """

    def __init__(self, base_path: str = BASE_PATH):
        self.base_path = base_path.rstrip("/")
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.requests: list[httpx.Request] = []
        self.status_overrides: dict[tuple[str, str], int] = {}
        self.network_failures: set[tuple[str, str]] = set()

    # -- test helpers -----------------------------------------------------

    def add_dir(self, path: str) -> None:
        current = ""
        for segment in path.strip("/").split("/"):
            if segment:
                current = f"{current}/{segment}"
                self.dirs.add(current)

    def add_file(self, path: str, content: bytes = b"") -> None:
        self.add_dir(_parent(path))
        self.files[path] = content

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        """Recorded (method, resource path) pairs, optionally for one method."""
        recorded = [(r.method, self.resource_path(r.url)) for r in self.requests]
        if method is None:
            return recorded
        return [call for call in recorded if call[0] == method]

    def resource_path(self, url: httpx.URL) -> str:
        path = url.path
        if path.startswith(self.base_path):
            path = path[len(self.base_path) :]
        return "/" + path.strip("/")

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    # -- request handling -------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self.resource_path(request.url)
        key = (request.method, path)

        if key in self.network_failures:
            raise httpx.ConnectError("Connection refused", request=request)
        if key in self.status_overrides:
            return httpx.Response(self.status_overrides[key], content=b"injected")

        handler = getattr(self, f"_handle_{request.method.lower()}", None)
        if handler is None:
            return httpx.Response(405)
        return handler(request, path)

    def _handle_head(self, request: httpx.Request, path: str) -> httpx.Response:
        return httpx.Response(200 if self.exists(path) else 404)

    def _handle_get(self, request: httpx.Request, path: str) -> httpx.Response:
        if path in self.files:
            return httpx.Response(
                200,
                content=self.files[path],
                headers={"Content-Type": "text/plain; charset=utf-8"},
            )
        if path in self.dirs:
            return httpx.Response(200, content=b"")
        return httpx.Response(404)

    def _handle_put(self, request: httpx.Request, path: str) -> httpx.Response:
        if _parent(path) not in self.dirs:
            return httpx.Response(409)
        if path in self.dirs:
            return httpx.Response(405)
        created = path not in self.files
        self.files[path] = request.content
        return httpx.Response(201 if created else 204)

    def _handle_mkcol(self, request: httpx.Request, path: str) -> httpx.Response:
        if self.exists(path):
            return httpx.Response(405)
        if _parent(path) not in self.dirs:
            return httpx.Response(409)
        self.dirs.add(path)
        return httpx.Response(201)

    def _subtree(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return sorted(
            p for p in self.files.keys() | self.dirs if p == path or p.startswith(prefix)
        )

    def _handle_delete(self, request: httpx.Request, path: str) -> httpx.Response:
        if not self.exists(path):
            return httpx.Response(404)
        for p in self._subtree(path):
            self.files.pop(p, None)
            self.dirs.discard(p)
        return httpx.Response(204)

    def _transfer(self, request: httpx.Request, path: str, move: bool) -> httpx.Response:
        destination = self.resource_path(httpx.URL(request.headers["Destination"]))
        overwrite = request.headers.get("Overwrite", "T") == "T"

        if not self.exists(path):
            return httpx.Response(404)
        if self.exists(destination) and not overwrite:
            return httpx.Response(412)
        if _parent(destination) not in self.dirs:
            return httpx.Response(409)

        replaced = self.exists(destination)
        for p in self._subtree(path):
            target = destination + p[len(path) :]
            if p in self.dirs:
                self.dirs.add(target)
            else:
                self.files[target] = self.files[p]
        if move:
            for p in self._subtree(path):
                self.files.pop(p, None)
                self.dirs.discard(p)
        return httpx.Response(204 if replaced else 201)

    def _handle_move(self, request: httpx.Request, path: str) -> httpx.Response:
        return self._transfer(request, path, move=True)

    def _handle_copy(self, request: httpx.Request, path: str) -> httpx.Response:
        return self._transfer(request, path, move=False)

    def _entry_xml(self, path: str) -> str:
        is_dir = path in self.dirs
        href = self.base_path + path
        if is_dir and not href.endswith("/"):
            href += "/"

        if is_dir:
            props = "<d:resourcetype><d:collection/></d:resourcetype>"
        else:
            content = self.files[path]
            etag = hashlib.md5(content).hexdigest()
            props = (
                "<d:resourcetype/>"
                f"<d:getcontentlength>{len(content)}</d:getcontentlength>"
                "<d:getcontenttype>application/octet-stream</d:getcontenttype>"
                f'<d:getetag>"{etag}"</d:getetag>'
            )

        name = path.rsplit("/", 1)[-1]
        return (
            "<d:response>"
            f"<d:href>{quote(href)}</d:href>"
            "<d:propstat><d:prop>"
            f"{props}"
            f"<d:getlastmodified>{LAST_MODIFIED}</d:getlastmodified>"
            f"<d:displayname>{name}</d:displayname>"
            "</d:prop><d:status>HTTP/1.1 200 OK</d:status></d:propstat>"
            "</d:response>"
        )

    def _handle_propfind(self, request: httpx.Request, path: str) -> httpx.Response:
        if not self.exists(path):
            return httpx.Response(404)

        depth = request.headers.get("Depth", "infinity")
        if depth == "0" or path in self.files:
            targets = [path]
        elif depth == "1":
            targets = [path] + sorted(
                p
                for p in self.files.keys() | self.dirs
                if p != path and _parent(p) == path
            )
        else:
            targets = self._subtree(path)

        body = (
            '<?xml version="1.0" encoding="utf-8"?>'
            '<d:multistatus xmlns:d="DAV:">'
            + "".join(self._entry_xml(p) for p in targets)
            + "</d:multistatus>"
        )
        return httpx.Response(
            207,
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/xml; charset=utf-8"},
        )


@pytest.fixture
def dav_server() -> FakeDAVServer:
    return FakeDAVServer()


@pytest.fixture
def mock_transport(dav_server: FakeDAVServer) -> httpx.MockTransport:
    return httpx.MockTransport(dav_server.handler)


@pytest.fixture
async def client(
    mock_transport: httpx.MockTransport,
) -> AsyncGenerator[WebDAVClient, Any]:
    """WebDAV client wired to the in-memory server."""
    async with create_client(
        BASE_URL, username="alice", password="secret", transport=mock_transport
    ) as webdav_client:
        yield webdav_client
