"""Unit tests for client construction, auth, preset headers and size limits."""

from unittest.mock import ANY

import httpx
import pytest

from webdav_core.client import build_http_client, create_client
from webdav_core.config import ClientConfig, ServerType
from webdav_core.errors import (
    ConflictError,
    NotFoundError,
    ProtocolError,
    TransportError,
)

pytestmark = pytest.mark.unit


class RecordingHandler:
    """Mock transport handler that records requests and replies with one response."""

    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)


async def test_basic_auth_header():
    handler = RecordingHandler()
    async with create_client(
        "https://dav.example.com",
        username="alice",
        password="secret",
        transport=httpx.MockTransport(handler),
    ) as client:
        await client.exists("/a.txt")

    assert handler.requests[0].headers["Authorization"] == "Basic YWxpY2U6c2VjcmV0"


async def test_bearer_token_header():
    handler = RecordingHandler()
    async with create_client(
        "https://dav.example.com", token="abc123", transport=httpx.MockTransport(handler)
    ) as client:
        await client.exists("/a.txt")

    assert handler.requests[0].headers["Authorization"] == "Bearer abc123"


async def test_anonymous_client_sends_no_authorization():
    handler = RecordingHandler()
    async with create_client(
        "https://dav.example.com", transport=httpx.MockTransport(handler)
    ) as client:
        await client.exists("/a.txt")

    assert "Authorization" not in handler.requests[0].headers


async def test_nextcloud_preset_header():
    handler = RecordingHandler()
    async with create_client(
        "https://cloud.example.com/remote.php/dav/files/alice",
        server_type=ServerType.NEXTCLOUD,
        transport=httpx.MockTransport(handler),
    ) as client:
        await client.exists("/a.txt")

    request = handler.requests[0]
    assert request.headers["OCS-APIRequest"] == "true"
    assert request.url.path == "/remote.php/dav/files/alice/a.txt"


async def test_yandex_preset_pins_endpoint():
    handler = RecordingHandler()
    async with create_client(
        "https://example.com/dav",
        token="oauth-token",
        server_type=ServerType.YANDEX_DISK,
        transport=httpx.MockTransport(handler),
    ) as client:
        await client.exists("/disk/a.txt")

    request = handler.requests[0]
    assert request.url.host == "webdav.yandex.ru"
    assert request.url.path == "/disk/a.txt"
    assert request.headers["X-Yandex-SDK-Version"] == "webdav-core"


async def test_caller_headers_override_preset():
    handler = RecordingHandler()
    async with create_client(
        "https://dav.example.com",
        server_type=ServerType.NEXTCLOUD,
        headers={"OCS-APIRequest": "false", "X-Trace": "1"},
        transport=httpx.MockTransport(handler),
    ) as client:
        await client.exists("/a.txt")

    request = handler.requests[0]
    assert request.headers["OCS-APIRequest"] == "false"
    assert request.headers["X-Trace"] == "1"


async def test_cookies_are_not_kept_between_requests():
    handler = RecordingHandler(headers={"Set-Cookie": "session=abc; Path=/"})
    async with create_client(
        "https://dav.example.com", transport=httpx.MockTransport(handler)
    ) as client:
        await client.exists("/a.txt")
        await client.exists("/b.txt")

    assert "Cookie" not in handler.requests[1].headers


async def test_paths_are_percent_encoded():
    handler = RecordingHandler()
    async with create_client(
        "https://dav.example.com/files", transport=httpx.MockTransport(handler)
    ) as client:
        await client.exists("/My Documents/résumé #1.pdf")

    raw_path = handler.requests[0].url.raw_path.decode("ascii")
    assert raw_path == "/files/My%20Documents/r%C3%A9sum%C3%A9%20%231.pdf"


async def test_request_body_over_limit_is_rejected_locally():
    handler = RecordingHandler(status_code=201)
    async with create_client(
        "https://dav.example.com",
        max_body_size=4,
        transport=httpx.MockTransport(handler),
    ) as client:
        with pytest.raises(TransportError, match="exceeds"):
            await client.put_file_contents("/big.bin", b"12345", overwrite=True)

    assert handler.requests == []


async def test_response_body_over_limit():
    handler = RecordingHandler(content=b"x" * 100)
    async with create_client(
        "https://dav.example.com",
        max_content_size=10,
        transport=httpx.MockTransport(handler),
    ) as client:
        with pytest.raises(TransportError, match="exceeds"):
            await client.get_file_contents("/big.bin")


async def test_streamed_response_over_limit():
    handler = RecordingHandler(content=b"x" * 100)
    async with create_client(
        "https://dav.example.com",
        max_content_size=10,
        transport=httpx.MockTransport(handler),
    ) as client:
        with pytest.raises(TransportError):
            async with client.get_file_stream("/big.bin"):
                pass


async def test_request_metrics_are_recorded(mocker):
    record_request = mocker.patch("webdav_core.client.base.record_webdav_request")
    record_error = mocker.patch("webdav_core.client.base.record_webdav_error")

    handler = RecordingHandler(status_code=404)
    async with create_client(
        "https://dav.example.com", transport=httpx.MockTransport(handler)
    ) as client:
        with pytest.raises(NotFoundError):
            await client.delete_file("/missing")

    record_request.assert_called_once_with("DELETE", 404, ANY)
    record_error.assert_called_once_with("DELETE", "NotFoundError")


async def test_single_attempt_without_retry():
    handler = RecordingHandler(status_code=429)
    async with create_client(
        "https://dav.example.com", transport=httpx.MockTransport(handler)
    ) as client:
        with pytest.raises(ProtocolError):
            await client.get_file_contents("/busy.txt")

    assert len(handler.requests) == 1


async def test_head_content_length_is_not_a_body():
    """A large file's HEAD length neither hides it nor disables overwrite checks."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "HEAD":
            return httpx.Response(200, headers={"Content-Length": str(200 * 1024 * 1024)})
        return httpx.Response(201)

    async with create_client(
        "https://dav.example.com", transport=httpx.MockTransport(handler)
    ) as client:
        assert await client.exists("/huge.iso") is True

        with pytest.raises(ConflictError):
            await client.put_file_contents("/huge.iso", b"tiny", overwrite=False)

    assert [r.method for r in requests] == ["HEAD", "HEAD"]


def test_tls_verification_disabled_reaches_transport(mocker):
    http_transport = mocker.patch("webdav_core.client.AsyncHTTPTransport")

    build_http_client(ClientConfig(base_url="https://dav.example.com", verify_ssl=False))

    http_transport.assert_called_once_with(verify=False)


def test_tls_verification_enabled_by_default(mocker):
    http_transport = mocker.patch("webdav_core.client.AsyncHTTPTransport")

    build_http_client(ClientConfig(base_url="https://dav.example.com"))

    http_transport.assert_called_once_with(verify=True)
