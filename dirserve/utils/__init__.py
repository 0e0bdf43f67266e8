"""Utility functions for dirserve."""

from dirserve.utils.formatters import format_bytes, content_disposition
from dirserve.utils.validators import parse_ranges, validate_selection

__all__ = [
    "format_bytes",
    "content_disposition",
    "parse_ranges",
    "validate_selection",
]
