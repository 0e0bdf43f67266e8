"""Typed errors raised by the listing and archive engine."""

import errno
from typing import Optional


class DirServeError(Exception):
    """Base class for every error the service surfaces to the HTTP layer."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, detail: str, path: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.path = path


class PathTraversal(DirServeError):
    """Requested path or name escapes the data root."""

    status_code = 403
    error = "Path traversal"


class NotFound(DirServeError):
    """Target path or selected child does not exist."""

    status_code = 404
    error = "Not found"


class PermissionDenied(DirServeError):
    """The operating system refused to read the path."""

    status_code = 403
    error = "Permission denied"


class IoFailure(DirServeError):
    """Unexpected I/O error while serving the request."""

    status_code = 500
    error = "I/O failure"


class SinkWriteFailure(DirServeError):
    """The outbound stream stopped accepting bytes (client went away)."""

    status_code = 499
    error = "Client disconnected"


class NotADirectory(DirServeError):
    """A listing or archive was requested for something that is not a directory."""

    status_code = 400
    error = "Not a directory"


class NotAFile(DirServeError):
    """A download was requested for something that is not a regular file."""

    status_code = 415
    error = "Not a file"


class EmptySelection(DirServeError):
    """An archive was requested without selecting any entry."""

    status_code = 400
    error = "Empty selection"


class InvalidRange(DirServeError):
    """The Range header could not be parsed."""

    status_code = 400
    error = "Invalid range"


class RangeNotSatisfiable(DirServeError):
    """The Range header is well formed but cannot be served."""

    status_code = 416
    error = "Range not satisfiable"


def translate_os_error(exc: OSError, path: Optional[str] = None) -> DirServeError:
    """
    Map an OSError onto the engine's error kinds.

    Args:
        exc: Error raised by the operating system
        path: Client-facing path the error refers to

    Returns:
        NotFound, PermissionDenied or IoFailure
    """
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)) or exc.errno in (errno.ENOENT, errno.ELOOP):
        return NotFound(f"No such file or directory: {path}", path=path)
    if isinstance(exc, PermissionError):
        return PermissionDenied(f"Permission denied: {path}", path=path)
    return IoFailure(f"I/O error on {path}: {exc.strerror or exc}", path=path)
