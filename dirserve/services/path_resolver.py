"""Confine client-supplied paths to the data root."""

import logging
import re
from pathlib import Path
from typing import Union

from dirserve.core.errors import NotFound, PathTraversal, translate_os_error

logger = logging.getLogger(__name__)

_DRIVE = re.compile(r"^[A-Za-z]:")


def split_relative_path(relative_path: str) -> list[str]:
    """
    Split a client path into normal components.

    Empty and "." segments are dropped, backslashes count as separators.

    Args:
        relative_path: URL-decoded path relative to the data root

    Returns:
        List of path components (empty for the root itself)

    Raises:
        PathTraversal: On "..", absolute or drive-qualified paths and NUL bytes
    """
    if "\x00" in relative_path:
        raise PathTraversal("Path cannot contain NUL bytes", path=relative_path)

    normalized = relative_path.replace("\\", "/")
    if normalized.startswith("/") or _DRIVE.match(normalized):
        raise PathTraversal(f"Path must be relative, got {relative_path!r}", path=relative_path)

    parts = []
    for part in normalized.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise PathTraversal(f"Path cannot contain '..' (got {relative_path!r})", path=relative_path)
        parts.append(part)
    return parts


def check_name(name: str) -> str:
    """
    Ensure a name is a single normal path component.

    Raises:
        PathTraversal: On separators, NUL bytes, "." and ".."
    """
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
        raise PathTraversal(f"Invalid entry name: {name!r}", path=name)
    return name


def is_within(root: Path, path: Path) -> bool:
    """Whether canonical ``path`` is ``root`` or lies below it."""
    return path == root or root in path.parents


def escapes_root(root: Path, path: Path) -> bool:
    """
    Whether ``path`` is a symlink whose target lies outside ``root``.

    Raises:
        OSError: If the link is dangling
        RuntimeError: If the link loops
    """
    return path.is_symlink() and not is_within(root, path.resolve(strict=True))


def is_portable_name(name: str) -> bool:
    """Whether a name read from disk can be rendered as UTF-8."""
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _confine(root: Path, candidate: Path, display: str) -> Path:
    try:
        candidate.lstat()
    except OSError as e:
        raise translate_os_error(e, display) from e

    try:
        real = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        # Dangling or looping symlink
        raise NotFound(f"No such file or directory: {display}", path=display) from e

    if not is_within(root, real):
        logger.warning(f"Rejected '{display}': resolves outside the data root")
        raise PathTraversal(f"Path escapes the data root: {display}", path=display)

    return candidate


def resolve(data_root: Union[str, Path], relative_path: str) -> Path:
    """
    Map a client path to an absolute path inside the data root.

    Args:
        data_root: Served directory
        relative_path: URL-decoded path relative to the data root

    Returns:
        Absolute path, lexically and canonically inside data_root

    Raises:
        PathTraversal: If the path escapes the root, lexically or through a symlink
        NotFound: If the path does not exist
        PermissionDenied: If the path cannot be inspected
    """
    root = Path(data_root).resolve()
    parts = split_relative_path(relative_path)
    if not parts:
        return root
    return _confine(root, root.joinpath(*parts), "/".join(parts))


def resolve_child(data_root: Union[str, Path], directory: Path, name: str) -> Path:
    """
    Resolve one immediate child name of a directory already inside the root.

    Args:
        data_root: Served directory
        directory: Absolute directory returned by resolve()
        name: Single path component

    Returns:
        Absolute path of the child

    Raises:
        PathTraversal: If name is not a single normal component or escapes the root
        NotFound: If the child does not exist
    """
    check_name(name)
    root = Path(data_root).resolve()
    return _confine(root, directory / name, name)
