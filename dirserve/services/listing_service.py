"""Directory listing service."""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from dirserve.core.errors import DirServeError, NotADirectory, translate_os_error
from dirserve.models.entry import DirectoryEntry, Entry, FileEntry
from dirserve.models.listing import Breadcrumb, DirectoryListing, SortDirection, SortKey
from dirserve.services import path_resolver
from dirserve.services.metadata import read_entry

logger = logging.getLogger(__name__)


def _children_count(entry: Entry) -> int:
    if isinstance(entry, DirectoryEntry):
        return entry.children_count
    if isinstance(entry, FileEntry):
        return 0
    raise TypeError(f"Unknown entry type: {type(entry).__name__}")


SORT_KEYS: dict[SortKey, Callable[[Entry], Any]] = {
    SortKey.NAME: lambda entry: entry.name,
    SortKey.DATE: lambda entry: entry.created,
    SortKey.SIZE: lambda entry: entry.size,
    SortKey.CHILDREN_COUNT: _children_count,
}


def sort_entries(
    entries: Iterable[Entry],
    sort_key: SortKey = SortKey.NAME,
    sort_direction: SortDirection = SortDirection.ASCENDING,
) -> list[Entry]:
    """
    Order entries by a sort key.

    Names are compared by code point (case-sensitive). Entries with equal keys
    stay in ascending name order whatever the direction.

    Args:
        entries: Entries to order
        sort_key: Value to order by
        sort_direction: Ascending or descending

    Returns:
        New sorted list
    """
    # list.sort is stable, including with reverse=True
    ordered = sorted(entries, key=lambda entry: entry.name)
    ordered.sort(key=SORT_KEYS[sort_key], reverse=sort_direction == SortDirection.DESCENDING)
    return ordered


def list_directory(
    directory: Path,
    sort_key: SortKey = SortKey.NAME,
    sort_direction: SortDirection = SortDirection.ASCENDING,
    data_root: Optional[Path] = None,
) -> list[Entry]:
    """
    List the immediate children of a directory.

    Children that vanish or cannot be read while listing are skipped, as are
    names that are not valid UTF-8 and symlinks leading out of the data root.

    Args:
        directory: Absolute directory path
        sort_key: Value to order by
        sort_direction: Ascending or descending
        data_root: Canonical served directory, defaults to ``directory``

    Returns:
        Ordered list of entries

    Raises:
        NotADirectory: If the path is not a directory
        NotFound: If the directory itself is missing
        PermissionDenied: If the directory cannot be read
    """
    try:
        with os.scandir(directory) as it:
            names = [child.name for child in it]
    except NotADirectoryError as e:
        raise NotADirectory(f"Not a directory: {directory.name}", path=directory.name) from e
    except OSError as e:
        raise translate_os_error(e, directory.name) from e

    root = Path(data_root or directory).resolve()
    entries = []
    for name in names:
        if not path_resolver.is_portable_name(name):
            logger.warning(f"Skipping {name!r} in '{directory}': name is not valid UTF-8")
            continue
        path = directory / name
        try:
            if path_resolver.escapes_root(root, path):
                logger.warning(f"Skipping '{name}' in '{directory}': symlink leaves the data root")
                continue
            entries.append(read_entry(path, name, root))
        except (OSError, RuntimeError) as e:
            logger.warning(f"Skipping '{name}' in '{directory}': {e}")
        except DirServeError as e:
            logger.warning(f"Skipping '{name}' in '{directory}': {e.detail}")

    return sort_entries(entries, sort_key, sort_direction)


def build_breadcrumbs(parts: list[str]) -> list[Breadcrumb]:
    """Breadcrumbs for each segment of a relative path."""
    return [Breadcrumb(name=part, path="/".join(parts[: i + 1])) for i, part in enumerate(parts)]


class ListingService:
    """Service for browsing directories below the data root."""

    def __init__(self, data_root: Union[str, Path]):
        """
        Initialize listing service.

        Args:
            data_root: Served directory
        """
        self.data_root = Path(data_root).resolve()

    def resolve(self, relative_path: str) -> Path:
        """Resolve a client path against the data root."""
        return path_resolver.resolve(self.data_root, relative_path)

    def browse(
        self,
        relative_path: str,
        sort_key: SortKey = SortKey.NAME,
        sort_direction: SortDirection = SortDirection.ASCENDING,
    ) -> DirectoryListing:
        """
        Build the listing of a directory below the data root.

        Args:
            relative_path: URL-decoded client path
            sort_key: Value to order by
            sort_direction: Ascending or descending

        Returns:
            DirectoryListing with ordered entries and navigation data
        """
        parts = path_resolver.split_relative_path(relative_path)
        directory = self.resolve(relative_path)
        entries = list_directory(directory, sort_key, sort_direction, self.data_root)

        path = "/".join(parts)
        logger.info(f"Listed '{path or '/'}': {len(entries)} entries (sort={sort_key.value}, ord={sort_direction.value})")

        return DirectoryListing(
            path=path,
            parent="/".join(parts[:-1]) if parts else None,
            breadcrumbs=build_breadcrumbs(parts),
            sort=sort_key,
            ord=sort_direction,
            entries=entries,
            total_count=len(entries),
        )
