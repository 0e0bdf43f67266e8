"""Directory entry models."""

from datetime import datetime
from typing import Annotated, Literal, Union
from urllib.parse import quote
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from dirserve.utils.formatters import format_bytes


class _EntryBase(BaseModel):
    """Fields shared by every entry variant."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name of the entry inside its directory")
    created: datetime = Field(..., description="Creation timestamp (UTC), modification time where unavailable")
    size: int = Field(..., description="Size in bytes", ge=0)

    @field_validator("name")
    @classmethod
    def _single_component(cls, value: str) -> str:
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"invalid entry name: {value!r}")
        return value

    @computed_field
    @property
    def size_formatted(self) -> str:
        return format_bytes(self.size, decimal_places=1)

    @computed_field
    @property
    def name_encoded(self) -> str:
        return quote(self.name, safe="")


class FileEntry(_EntryBase):
    """A regular file; size is its byte length on disk."""

    kind: Literal["file"] = "file"


class DirectoryEntry(_EntryBase):
    """
    A directory.

    size is the total of its immediate files, subdirectories count as 0.
    """

    kind: Literal["directory"] = "directory"
    children_count: int = Field(..., description="Number of readable immediate children", ge=0)


Entry = Annotated[Union[FileEntry, DirectoryEntry], Field(discriminator="kind")]
