import logging
from typing import Optional

from httpx import (
    AsyncBaseTransport,
    AsyncClient,
    AsyncHTTPTransport,
    Auth,
    BasicAuth,
    Request,
    Response,
    Timeout,
)

from webdav_core.auth import BearerAuth
from webdav_core.config import AuthType, ClientConfig

from .webdav import WebDAVClient

logger = logging.getLogger(__name__)


async def log_request(request: Request):
    logger.debug("Request event hook: %s %s", request.method, request.url)
    logger.debug("Headers: %s", request.headers)


async def log_response(response: Response):
    # Bodies may be streamed, so only the status line is logged here
    request = response.request
    logger.debug(
        "Response [%s] %s %s", response.status_code, request.method, request.url
    )


class AsyncDisableCookieTransport(AsyncBaseTransport):
    """This Transport disable cookies from accumulating in the httpx AsyncClient

    Thanks to: https://github.com/encode/httpx/issues/2992#issuecomment-2133258994
    """

    def __init__(self, transport: AsyncBaseTransport):
        self.transport = transport

    async def handle_async_request(self, request: Request) -> Response:
        response = await self.transport.handle_async_request(request)
        response.headers.pop("set-cookie", None)
        return response

    async def aclose(self) -> None:
        await self.transport.aclose()


def _auth_for(config: ClientConfig) -> Optional[Auth]:
    if config.auth_type is AuthType.TOKEN:
        return BearerAuth(config.token)
    if config.auth_type is AuthType.BASIC:
        return BasicAuth(config.username, config.password or "")
    return None


def build_http_client(
    config: ClientConfig, transport: Optional[AsyncBaseTransport] = None
) -> AsyncClient:
    """Create the AsyncClient for a config.

    Args:
        config: Connection settings
        transport: Transport override (e.g. ``httpx.MockTransport`` in tests);
            defaults to an HTTP transport honouring ``config.verify_ssl``
    """
    if transport is None:
        transport = AsyncHTTPTransport(verify=config.verify_ssl)

    if not config.verify_ssl:
        logger.warning(f"TLS certificate verification disabled for {config.base_url}")

    return AsyncClient(
        base_url=config.base_url,
        auth=_auth_for(config),
        headers=config.request_headers(),
        transport=AsyncDisableCookieTransport(transport),
        event_hooks={"request": [log_request], "response": [log_response]},
        timeout=Timeout(timeout=config.timeout),
    )


def client_from_config(
    config: ClientConfig, *, transport: Optional[AsyncBaseTransport] = None
) -> WebDAVClient:
    logger.debug(
        f"Creating WebDAV client for {config.base_url} "
        f"(auth={config.auth_type.value}, server={config.server_type.value})"
    )
    return WebDAVClient(build_http_client(config, transport), config)


def create_client(
    base_url: str,
    *,
    transport: Optional[AsyncBaseTransport] = None,
    **options,
) -> WebDAVClient:
    """Create a WebDAV client.

    Args:
        base_url: WebDAV root URL, e.g. https://cloud.example.com/remote.php/dav/files/alice
        transport: Optional httpx transport override
        **options: Any other ClientConfig field (username, password, token,
            headers, verify_ssl, max_body_size, max_content_size, timeout,
            server_type)

    Examples:
        async with create_client("https://dav.example.com", username="u", password="p") as client:
            files = await client.get_directory_contents("/docs")
    """
    return client_from_config(ClientConfig(base_url=base_url, **options), transport=transport)


__all__ = [
    "AsyncDisableCookieTransport",
    "WebDAVClient",
    "build_http_client",
    "client_from_config",
    "create_client",
]
