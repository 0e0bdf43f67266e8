"""Core definitions shared by services and routers."""

from dirserve.core.errors import (
    DirServeError,
    PathTraversal,
    NotFound,
    PermissionDenied,
    IoFailure,
    SinkWriteFailure,
    NotADirectory,
    NotAFile,
    EmptySelection,
    InvalidRange,
    RangeNotSatisfiable,
    translate_os_error,
)

__all__ = [
    "DirServeError",
    "PathTraversal",
    "NotFound",
    "PermissionDenied",
    "IoFailure",
    "SinkWriteFailure",
    "NotADirectory",
    "NotAFile",
    "EmptySelection",
    "InvalidRange",
    "RangeNotSatisfiable",
    "translate_os_error",
]
