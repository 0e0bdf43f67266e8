"""Entry metadata reader."""

import logging
import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dirserve.core.errors import NotAFile, translate_os_error
from dirserve.models.entry import DirectoryEntry, Entry, FileEntry
from dirserve.services import path_resolver

logger = logging.getLogger(__name__)


def created_time(st: os.stat_result) -> datetime:
    """Birth time where the platform records it, modification time otherwise."""
    timestamp = getattr(st, "st_birthtime", None)
    if timestamp is None:
        timestamp = st.st_mtime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _scan_children(path: Path, name: str, data_root: Optional[Path] = None) -> tuple[int, int]:
    """
    Count the immediate children of a directory and total their file sizes.

    Children that vanish, cannot be stat'ed or link outside ``data_root``
    are left out.

    Returns:
        (children_count, size)
    """
    count = 0
    size = 0
    try:
        with os.scandir(path) as it:
            for child in it:
                try:
                    if data_root is not None and path_resolver.escapes_root(data_root, Path(child.path)):
                        continue
                    st = child.stat()
                except (OSError, RuntimeError) as e:
                    logger.debug(f"Skipping unreadable child {child.name!r} of '{name}': {e}")
                    continue
                count += 1
                if stat.S_ISREG(st.st_mode):
                    size += st.st_size
    except OSError as e:
        raise translate_os_error(e, name) from e
    return count, size


def read_entry(path: Path, name: Optional[str] = None, data_root: Optional[Path] = None) -> Entry:
    """
    Stat a path and describe it as a file or directory entry.

    Symlinks are followed. With ``data_root`` set, children of a directory
    that link outside it are not counted.

    Args:
        path: Absolute path to inspect
        name: Name to report, defaults to the last path component
        data_root: Canonical served directory

    Returns:
        FileEntry or DirectoryEntry snapshot

    Raises:
        NotFound: If the path disappeared
        PermissionDenied: If stat or the child enumeration was refused
        IoFailure: On any other OS error
        NotAFile: If the path is neither a directory nor a regular file
    """
    name = name or path.name
    try:
        st = os.stat(path)
    except OSError as e:
        raise translate_os_error(e, name) from e

    if stat.S_ISDIR(st.st_mode):
        children_count, size = _scan_children(path, name, data_root)
        return DirectoryEntry(
            name=name,
            created=created_time(st),
            size=size,
            children_count=children_count,
        )

    if not stat.S_ISREG(st.st_mode):
        raise NotAFile(f"Not a regular file: {name}", path=name)

    return FileEntry(name=name, created=created_time(st), size=st.st_size)
