"""Validation utilities."""

from typing import Iterable, Optional

from dirserve.core.errors import EmptySelection, InvalidRange


def parse_ranges(header: str) -> list[tuple[Optional[int], Optional[int]]]:
    """
    Parse an HTTP Range header.

    Args:
        header: Header value, e.g. "bytes=0-499,1000-"

    Returns:
        List of (start, end) pairs, either side None when omitted

    Raises:
        InvalidRange: If the header is malformed
    """
    unit, sep, range_str = header.strip().partition("=")
    if not sep:
        raise InvalidRange(f"Missing range values in {header!r}")
    if unit.strip() != "bytes":
        raise InvalidRange(f"Range unit was not bytes: {unit!r}")

    ranges = []
    for part in range_str.split(","):
        pieces = part.strip().split("-")
        if len(pieces) != 2:
            raise InvalidRange(f"Expected exactly one '-' in range {part!r}")

        bounds = []
        for piece in pieces:
            piece = piece.strip()
            if not piece:
                bounds.append(None)
            elif piece.isdigit():
                bounds.append(int(piece))
            else:
                raise InvalidRange(f"Invalid value for range: {piece!r}")

        start, end = bounds
        if start is not None and end is not None and end < start:
            raise InvalidRange(f"Range end before start in {part!r}")
        ranges.append((start, end))

    return ranges


def validate_selection(names: Iterable[str]) -> list[str]:
    """
    Collapse duplicates and order a client selection.

    Args:
        names: Names submitted by the client

    Returns:
        Unique names in code point order

    Raises:
        EmptySelection: If nothing was selected
    """
    selection = sorted({name for name in names if name != ""})
    if not selection:
        raise EmptySelection("Select at least one entry to archive")
    return selection
