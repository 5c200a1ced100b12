"""WebDAV client for file and directory operations."""

import logging
import posixpath
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, List, Literal, Optional
from urllib.parse import unquote

from httpx import RequestError, Response

from webdav_core.errors import (
    ConflictError,
    NotFoundError,
    ParseError,
    TransportError,
    WebDAVError,
)
from webdav_core.mapping import normalize_path, record_to_file_info
from webdav_core.models import FileInfo
from webdav_core.multistatus import PROPFIND_BODY, parse_multistatus

from .base import BaseWebDAVClient, _is_absolute_url

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


async def _aiter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


class WebDAVClient(BaseWebDAVClient):
    """Client for WebDAV file and directory operations.

    Paths are absolute resource paths (``/docs/report.pdf``) resolved
    against the configured base URL.
    """

    async def exists(self, path: str) -> bool:
        """Check whether a resource exists via HEAD.

        Every failure (404, auth errors, network and TLS errors) is reported
        as ``False``; only 404 is logged quietly.
        """
        try:
            await self._make_request("HEAD", path)
        except NotFoundError:
            return False
        except WebDAVError as e:
            logger.warning(f"Existence check for '{path}' failed, reporting missing: {e}")
            return False
        return True

    async def _propfind(self, path: str, depth: str) -> Response:
        headers = {"Depth": depth, "Content-Type": "application/xml; charset=utf-8"}
        return await self._make_request(
            "PROPFIND", path, headers=headers, content=PROPFIND_BODY
        )

    async def stat(self, path: str) -> FileInfo:
        """Get information about a single file or directory (PROPFIND Depth 0)."""
        logger.debug(f"Getting info for: {path}")

        response = await self._propfind(path, depth="0")
        records = parse_multistatus(response.content)
        if not records:
            raise ParseError(f"PROPFIND {path}: multistatus contained no resources")

        return record_to_file_info(records[0], self.base_path)

    async def get_file_contents(
        self, path: str, format: Literal["binary", "text"] = "binary"
    ) -> bytes | str:
        """Read a file's content via GET.

        Args:
            path: File path
            format: "binary" returns bytes, "text" returns str decoded with the response charset
        """
        if format not in ("binary", "text"):
            raise ValueError(f"Unsupported format '{format}', expected 'binary' or 'text'")

        logger.debug(f"Reading file: {path}")
        response = await self._make_request("GET", path)
        logger.debug(f"Successfully read file '{path}' ({len(response.content)} bytes)")

        if format == "binary":
            return response.content
        return response.text

    @asynccontextmanager
    async def get_file_stream(
        self, path: str, chunk_size: Optional[int] = None
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Stream a file's content without buffering it.

        Usage:
            async with client.get_file_stream("/big.iso") as chunks:
                async for chunk in chunks:
                    ...
        """
        response = await self._make_request("GET", path, stream=True)
        try:
            yield self._iter_body(response, path, chunk_size)
        finally:
            await response.aclose()

    @staticmethod
    async def _iter_body(
        response: Response, path: str, chunk_size: Optional[int]
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes(chunk_size):
                yield chunk
        except RequestError as e:
            raise TransportError(f"GET {path}: {e}") from e

    async def _check_overwrite(self, path: str, overwrite: bool) -> None:
        if not overwrite and await self.exists(path):
            raise ConflictError(
                f"Resource {path} already exists", status_code=409, status_text="Conflict"
            )

    async def _create_parents_of(self, path: str) -> None:
        parent = posixpath.dirname(normalize_path(path))
        if parent != "/":
            await self.create_parent_directories(parent)

    async def put_file_contents(
        self,
        path: str,
        data: bytes | str,
        *,
        overwrite: bool = False,
        create_parents: bool = False,
    ) -> None:
        """Write content to a file via PUT.

        Args:
            path: Target file path
            data: File content
            overwrite: Replace an existing file; when False an existing
                file raises ConflictError before anything is uploaded
            create_parents: Create missing ancestor directories first
        """
        logger.debug(f"Writing file: {path}")

        await self._check_overwrite(path, overwrite)
        if create_parents:
            await self._create_parents_of(path)

        await self._make_request(
            "PUT", path, headers={"Content-Type": OCTET_STREAM}, content=data
        )
        logger.debug(f"Successfully wrote file '{path}'")

    async def put_file_stream(
        self,
        path: str,
        stream: Any,
        *,
        overwrite: bool = False,
        create_parents: bool = False,
    ) -> None:
        """Upload a file from an iterable or async iterable of bytes.

        Same policies as put_file_contents; the body size limit does not apply.
        """
        if not hasattr(stream, "__aiter__") and not isinstance(
            stream, (bytes, bytearray, str)
        ):
            # AsyncClient only sends async streams
            stream = _aiter_chunks(stream)

        logger.debug(f"Streaming file: {path}")

        await self._check_overwrite(path, overwrite)
        if create_parents:
            await self._create_parents_of(path)

        await self._make_request(
            "PUT", path, headers={"Content-Type": OCTET_STREAM}, content=stream
        )
        logger.debug(f"Successfully streamed file '{path}'")

    async def create_directory(self, path: str, *, parents: bool = False) -> None:
        """Create a directory via MKCOL.

        Args:
            path: Directory path
            parents: Also create missing ancestors (and skip the directory
                itself if it already exists), like ``mkdir -p``
        """
        if parents:
            await self.create_parent_directories(path)
            return

        logger.debug(f"Creating directory: {path}")
        await self._make_request("MKCOL", path)
        logger.debug(f"Successfully created directory '{path}'")

    async def create_parent_directories(self, path: str) -> List[str]:
        """Create every missing directory along ``path``, top-down.

        Each level is checked and created before the next one is attempted.

        Returns:
            Paths of the directories that were created
        """
        created = []
        current = ""
        for segment in path.split("/"):
            if not segment:
                continue
            current = f"{current}/{segment}"
            if not await self.exists(current):
                await self.create_directory(current)
                created.append(current)

        if created:
            logger.debug(f"Created directories: {created}")
        return created

    async def delete_file(self, path: str) -> None:
        """Delete a file or directory via DELETE (recursive on the server for collections)."""
        logger.debug(f"Deleting resource: {path}")
        try:
            await self._make_request("DELETE", path)
        except WebDAVError as e:
            logger.error(f"Error deleting resource '{path}': {e}")
            raise
        logger.debug(f"Successfully deleted resource '{path}'")

    async def _transfer(
        self,
        method: str,
        source_path: str,
        destination_path: str,
        overwrite: bool,
        create_parents: bool,
    ) -> None:
        await self._check_overwrite(destination_path, overwrite)
        if create_parents and not _is_absolute_url(destination_path):
            await self._create_parents_of(destination_path)

        headers = {
            "Destination": self._absolute_url(destination_path),
            "Overwrite": "T" if overwrite else "F",
        }

        logger.debug(f"{method} '{source_path}' -> '{destination_path}'")
        try:
            await self._make_request(method, source_path, headers=headers)
        except WebDAVError as e:
            logger.error(
                f"Error in {method} from '{source_path}' to '{destination_path}': {e}"
            )
            raise

    async def move_file(
        self,
        source_path: str,
        destination_path: str,
        *,
        overwrite: bool = False,
        create_parents: bool = False,
    ) -> None:
        """Move or rename a resource via MOVE.

        Args:
            source_path: The path of the file or directory to move
            destination_path: The new path (relative paths resolve under the base URL)
            overwrite: Whether to overwrite the destination if it exists
            create_parents: Create missing ancestors of the destination first
        """
        await self._transfer("MOVE", source_path, destination_path, overwrite, create_parents)

    async def copy_file(
        self,
        source_path: str,
        destination_path: str,
        *,
        overwrite: bool = False,
        create_parents: bool = False,
    ) -> None:
        """Copy a resource via COPY. Arguments as for move_file."""
        await self._transfer("COPY", source_path, destination_path, overwrite, create_parents)

    async def get_directory_contents(
        self, path: str, *, deep: bool = False
    ) -> List[FileInfo]:
        """List a directory via PROPFIND.

        Args:
            path: Directory path
            deep: List the whole subtree (Depth: infinity) instead of
                immediate children (Depth: 1)

        Returns:
            Entries for every resource except the directory itself
        """
        normalized = path if path.endswith("/") else f"{path}/"
        logger.debug(f"Listing directory: {normalized} (deep={deep})")

        response = await self._propfind(normalized, depth="infinity" if deep else "1")
        records = parse_multistatus(response.content)

        # Servers differ on how they spell the collection's own entry
        own_entry = {path, normalized, normalized.rstrip("/")}
        own_path = normalize_path(path)

        items = []
        for record in records:
            if unquote(record.href) in own_entry:
                continue
            info = record_to_file_info(record, self.base_path)
            if info.path == own_path:
                continue
            items.append(info)

        logger.debug(f"Found {len(items)} items in directory: {path}")
        return items
