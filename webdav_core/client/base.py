"""Base WebDAV transport with size limits, error classification and metrics."""

import logging
import time
from abc import ABC
from typing import Any, Optional
from urllib.parse import quote

from httpx import AsyncClient, RequestError, Response

from webdav_core.config import ClientConfig
from webdav_core.errors import (
    NotFoundError,
    TransportError,
    WebDAVError,
    error_for_response,
)
from webdav_core.observability.metrics import (
    record_webdav_error,
    record_webdav_request,
    record_webdav_transfer,
)
from webdav_core.observability.tracing import trace_webdav_request

logger = logging.getLogger(__name__)


def _is_absolute_url(path: str) -> bool:
    return path.startswith(("http://", "https://"))


def _body_length(content: Any) -> Optional[int]:
    """Size of an in-memory body, None for streams."""
    if isinstance(content, str):
        return len(content.encode("utf-8"))
    if isinstance(content, (bytes, bytearray, memoryview)):
        return len(content)
    return None


class BaseWebDAVClient(ABC):
    """Base class holding the shared HTTP client and issuing requests.

    The instance keeps no per-request state, so operations may run
    concurrently on one client.
    """

    def __init__(self, http_client: AsyncClient, config: ClientConfig):
        """Initialize with a configured HTTP client.

        Args:
            http_client: AsyncClient whose base_url is ``config.base_url``
            config: Connection settings the client was built from
        """
        self._client = http_client
        self.config = config

    @property
    def base_path(self) -> str:
        """Decoded path component of the base URL, e.g. ``/remote.php/dav/files/u/``."""
        return self._client.base_url.path

    def _encode_path(self, path: str) -> str:
        """Percent-encode a resource path; full URLs are passed through."""
        if _is_absolute_url(path):
            return path
        return quote(path, safe="/")

    def _absolute_url(self, path: str) -> str:
        """Resolve a path (leading ``/`` or relative) to a URL under the base URL."""
        if _is_absolute_url(path):
            return path
        return f"{self._client.base_url}{self._encode_path(path).lstrip('/')}"

    def _check_content_length(self, response: Response, context: str) -> None:
        content_length = response.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.config.max_content_size:
                raise TransportError(
                    f"{context}: response body of {content_length} bytes exceeds "
                    f"the {self.config.max_content_size} byte limit"
                )

    async def _make_request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[dict[str, str]] = None,
        content: Any = None,
        stream: bool = False,
    ) -> Response:
        """Issue one request and return the successful response.

        Single attempt, no retry. With ``stream=True`` the body is left
        unread and the caller must close the response.

        Args:
            method: HTTP or WebDAV method
            path: Resource path, resolved against the base URL
            headers: Extra request headers
            content: Request body (bytes, str or an async iterable of bytes)
            stream: Leave the response body unread

        Returns:
            Response object with a 2xx status

        Raises:
            WebDAVError: Classified HTTP failure, or TransportError
        """
        context = f"{method} {path}"

        sent = _body_length(content)
        if sent is not None and sent > self.config.max_body_size:
            record_webdav_error(method, "TransportError")
            raise TransportError(
                f"{context}: request body of {sent} bytes exceeds "
                f"the {self.config.max_body_size} byte limit"
            )

        logger.debug(f"Making {method} request to {path}")

        # Start timer for metrics
        start_time = time.time()

        with trace_webdav_request(method, path):
            request = self._client.build_request(
                method, self._encode_path(path), headers=headers, content=content
            )
            try:
                response = await self._client.send(request, stream=True)
            except RequestError as e:
                record_webdav_request(method, 0, time.time() - start_time)
                record_webdav_error(method, "TransportError")
                logger.warning(f"RequestError {context}: {e}")
                raise TransportError(f"{context}: {e}") from e

            record_webdav_request(method, response.status_code, time.time() - start_time)

            try:
                if not response.is_success:
                    await response.aread()
                    raise error_for_response(response, context)

                # HEAD reports the entity length but carries no body
                if method != "HEAD":
                    self._check_content_length(response, context)

                if not stream:
                    await response.aread()
                    received = len(response.content)
                    if received > self.config.max_content_size:
                        raise TransportError(
                            f"{context}: response body of {received} bytes exceeds "
                            f"the {self.config.max_content_size} byte limit"
                        )
                    record_webdav_transfer(method, sent=sent or 0, received=received)

            except WebDAVError as e:
                await response.aclose()
                record_webdav_error(method, type(e).__name__)
                if isinstance(e, NotFoundError):
                    # 404s are often expected (existence checks), keep them quiet
                    logger.debug(f"{context} returned 404")
                else:
                    logger.warning(f"{context} failed: {e}")
                raise
            except RequestError as e:
                await response.aclose()
                record_webdav_error(method, "TransportError")
                logger.warning(f"RequestError reading {context}: {e}")
                raise TransportError(f"{context}: {e}") from e

        return response

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False  # Don't suppress exceptions
