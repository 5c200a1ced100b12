"""Typed errors raised by the WebDAV client.

Every façade operation either returns its result or raises exactly one
subclass of :class:`WebDAVError`. HTTP failures are classified by status
code, network failures become :class:`TransportError`, and unreadable
multistatus bodies become :class:`ParseError`.
"""

from typing import Optional

from httpx import Response


class WebDAVError(Exception):
    """Base class for all client errors.

    Attributes:
        message: Human-readable description
        status_code: HTTP status code, None when no response was received
        status_text: HTTP reason phrase
        response_body: Raw response body, kept for diagnostics
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        response_body: Optional[bytes] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status_text = status_text
        self.response_body = response_body

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        status = f"HTTP {self.status_code}"
        if self.status_text:
            status = f"{status} {self.status_text}"
        return f"{self.message} ({status})"


class AuthenticationError(WebDAVError):
    """401 Unauthorized."""


class AuthorizationError(WebDAVError):
    """403 Forbidden."""


class NotFoundError(WebDAVError):
    """404 Not Found."""


class MethodNotSupportedError(WebDAVError):
    """405 Method Not Allowed."""


class ConflictError(WebDAVError):
    """409 Conflict, also raised locally when a target already exists."""


class PreconditionFailedError(WebDAVError):
    """412 Precondition Failed."""


class LockedError(WebDAVError):
    """423 Locked."""


class InsufficientStorageError(WebDAVError):
    """507 Insufficient Storage."""


class ProtocolError(WebDAVError):
    """Any other non-2xx status."""


class TransportError(WebDAVError):
    """No usable response: connection, TLS or timeout failure, or a body over the size limit."""


class ParseError(WebDAVError):
    """Malformed or unrecognized multistatus XML."""


STATUS_ERRORS: dict[int, tuple[type[WebDAVError], str]] = {
    401: (AuthenticationError, "Authentication failed. Check the credentials."),
    403: (AuthorizationError, "Access denied. Insufficient permissions."),
    404: (NotFoundError, "Resource not found."),
    405: (MethodNotSupportedError, "Method not supported by the server."),
    409: (ConflictError, "Conflict. The resource already exists or is locked."),
    412: (PreconditionFailedError, "Precondition failed."),
    423: (LockedError, "Resource is locked."),
    507: (InsufficientStorageError, "Insufficient storage on the server."),
}


def error_for_status(
    status_code: int,
    status_text: Optional[str] = None,
    response_body: Optional[bytes] = None,
    context: str = "",
) -> WebDAVError:
    """Build the classified error for a non-2xx status code."""
    error_class, description = STATUS_ERRORS.get(
        status_code, (ProtocolError, f"Unexpected HTTP status {status_code}.")
    )
    message = f"{context}: {description}" if context else description
    return error_class(
        message,
        status_code=status_code,
        status_text=status_text,
        response_body=response_body,
    )


def error_for_response(response: Response, context: str = "") -> WebDAVError:
    """Classify a failed ``httpx.Response``; its body must already be read."""
    return error_for_status(
        response.status_code,
        status_text=response.reason_phrase,
        response_body=response.content,
        context=context,
    )
