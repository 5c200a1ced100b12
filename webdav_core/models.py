"""Pydantic models for WebDAV resources."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ResourceKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class FileInfo(BaseModel):
    """Model for a file or directory reported by PROPFIND."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(description="Absolute resource path, percent-decoded")
    basename: str = Field(description="Last path segment or display name")
    kind: ResourceKind = Field(description="file or directory")
    size: int = Field(0, ge=0, description="Content length in bytes")
    last_modified: str = Field(
        alias="lastModified",
        description="Last-modified timestamp; current time when the server omits it",
    )
    mime_type: str | None = Field(None, alias="mimeType", description="Content type")
    etag: str | None = Field(None, description="Entity tag, unchanged from the server")

    @property
    def is_directory(self) -> bool:
        return self.kind is ResourceKind.DIRECTORY
