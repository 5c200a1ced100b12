"""Async WebDAV client with namespace-tolerant multistatus parsing."""

from webdav_core.client import WebDAVClient, client_from_config, create_client
from webdav_core.config import AuthType, ClientConfig, ServerType
from webdav_core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InsufficientStorageError,
    LockedError,
    MethodNotSupportedError,
    NotFoundError,
    ParseError,
    PreconditionFailedError,
    ProtocolError,
    TransportError,
    WebDAVError,
)
from webdav_core.models import FileInfo, ResourceKind
from webdav_core.multistatus import RawMultistatusRecord, parse_multistatus

__all__ = [
    "WebDAVClient",
    "create_client",
    "client_from_config",
    "ClientConfig",
    "AuthType",
    "ServerType",
    "FileInfo",
    "ResourceKind",
    "RawMultistatusRecord",
    "parse_multistatus",
    "WebDAVError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "MethodNotSupportedError",
    "ConflictError",
    "PreconditionFailedError",
    "LockedError",
    "InsufficientStorageError",
    "ProtocolError",
    "TransportError",
    "ParseError",
]
