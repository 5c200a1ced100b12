import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_SIZE = 100 * 1024 * 1024  # 100 MB
YANDEX_WEBDAV_URL = "https://webdav.yandex.ru/"


class AuthType(Enum):
    """How requests are authenticated against the WebDAV server."""

    NONE = "none"
    BASIC = "basic"
    TOKEN = "token"


class ServerType(Enum):
    """Server presets.

    STANDARD: plain RFC 4918 server, no extra headers.
    NEXTCLOUD: Nextcloud, sends ``OCS-APIRequest: true``.
    OWNCLOUD: ownCloud, same headers as NEXTCLOUD.
    YANDEX_DISK: Yandex.Disk, pins the endpoint to webdav.yandex.ru and
                 identifies the SDK with ``X-Yandex-SDK-Version``.
    """

    STANDARD = "standard"
    NEXTCLOUD = "nextcloud"
    OWNCLOUD = "owncloud"
    YANDEX_DISK = "yandex"


SERVER_HEADERS: dict[ServerType, dict[str, str]] = {
    ServerType.STANDARD: {},
    ServerType.NEXTCLOUD: {"OCS-APIRequest": "true"},
    ServerType.OWNCLOUD: {"OCS-APIRequest": "true"},
    ServerType.YANDEX_DISK: {"X-Yandex-SDK-Version": "webdav-core"},
}


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one WebDAV client.

    Immutable for the lifetime of the client built from it.
    """

    base_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True
    max_body_size: int = DEFAULT_MAX_BODY_SIZE
    max_content_size: int = DEFAULT_MAX_BODY_SIZE
    timeout: Optional[float] = None
    server_type: ServerType = ServerType.STANDARD

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("WebDAV base URL is required")

        if self.token and self.username:
            raise ValueError(
                "Cannot use both a bearer token and basic credentials. "
                "Set either WEBDAV_TOKEN or WEBDAV_USERNAME/WEBDAV_PASSWORD."
            )

        if self.password and not self.username:
            raise ValueError("A password was given without a username")

        if self.max_body_size <= 0 or self.max_content_size <= 0:
            raise ValueError("Body size limits must be positive")

        base_url = self.base_url
        if (
            self.server_type is ServerType.YANDEX_DISK
            and "webdav.yandex.ru" not in base_url
        ):
            logger.debug(
                f"Replacing base URL '{base_url}' with {YANDEX_WEBDAV_URL} for Yandex.Disk"
            )
            base_url = YANDEX_WEBDAV_URL

        if not base_url.endswith("/"):
            base_url = f"{base_url}/"

        # frozen dataclass, so normalized values go through object.__setattr__
        object.__setattr__(self, "base_url", base_url)
        object.__setattr__(self, "headers", dict(self.headers))

    @property
    def auth_type(self) -> AuthType:
        if self.token:
            return AuthType.TOKEN
        if self.username:
            return AuthType.BASIC
        return AuthType.NONE

    def request_headers(self) -> dict[str, str]:
        """Static headers sent with every request (preset headers first)."""
        return {**SERVER_HEADERS[self.server_type], **self.headers}

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build a config from ``WEBDAV_*`` environment variables."""
        timeout = os.getenv("WEBDAV_TIMEOUT")
        return cls(
            base_url=os.getenv("WEBDAV_URL", ""),
            username=os.getenv("WEBDAV_USERNAME") or None,
            password=os.getenv("WEBDAV_PASSWORD") or None,
            token=os.getenv("WEBDAV_TOKEN") or None,
            verify_ssl=(
                os.getenv("WEBDAV_ALLOW_UNAUTHORIZED_CERTS", "false").lower() != "true"
            ),
            max_body_size=int(
                os.getenv("WEBDAV_MAX_BODY_SIZE", str(DEFAULT_MAX_BODY_SIZE))
            ),
            max_content_size=int(
                os.getenv("WEBDAV_MAX_BODY_SIZE", str(DEFAULT_MAX_BODY_SIZE))
            ),
            timeout=float(timeout) if timeout else None,
            server_type=ServerType(os.getenv("WEBDAV_SERVER_TYPE", "standard").lower()),
        )

