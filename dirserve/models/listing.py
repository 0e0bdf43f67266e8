"""Listing request/response models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from dirserve.models.entry import Entry


class SortKey(str, Enum):
    """Value a listing is ordered by."""

    NAME = "name"
    DATE = "date"
    SIZE = "size"
    CHILDREN_COUNT = "children_count"


class SortDirection(str, Enum):
    """Direction a listing is ordered in."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class Breadcrumb(BaseModel):
    """One ancestor segment of the browsed path."""

    name: str = Field(..., description="Segment name")
    path: str = Field(..., description="Relative path up to and including this segment")


class DirectoryListing(BaseModel):
    """Directory listing response."""

    path: str = Field(..., description="Relative path of the listed directory ('' for the root)")
    parent: Optional[str] = Field(None, description="Relative path of the parent, null at the root")
    breadcrumbs: list[Breadcrumb] = Field(default_factory=list, description="Ancestors of the listed directory")
    sort: SortKey = Field(SortKey.NAME, description="Sort key applied")
    ord: SortDirection = Field(SortDirection.ASCENDING, description="Sort direction applied")
    entries: list[Entry] = Field(default_factory=list, description="Ordered entries")
    total_count: int = Field(..., description="Number of entries", ge=0)
