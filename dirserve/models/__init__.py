"""Pydantic models for API request/response."""

from dirserve.models.entry import Entry, FileEntry, DirectoryEntry
from dirserve.models.listing import SortKey, SortDirection, Breadcrumb, DirectoryListing
from dirserve.models.response import ErrorResponse, HealthResponse

__all__ = [
    "Entry",
    "FileEntry",
    "DirectoryEntry",
    "SortKey",
    "SortDirection",
    "Breadcrumb",
    "DirectoryListing",
    "ErrorResponse",
    "HealthResponse",
]
