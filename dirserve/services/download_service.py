"""Single-file download service."""

import logging
import mimetypes
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from dirserve.core.errors import NotAFile, RangeNotSatisfiable, translate_os_error
from dirserve.services import path_resolver
from dirserve.utils.validators import parse_ranges

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadPlan:
    """What to send for one download request."""

    path: Path
    filename: str
    content_type: str
    file_size: int
    start: int = 0
    end: Optional[int] = None
    partial: bool = False

    @property
    def length(self) -> int:
        if self.file_size == 0:
            return 0
        last = self.file_size - 1 if self.end is None else self.end
        return last - self.start + 1

    @property
    def content_range(self) -> str:
        last = self.start + self.length - 1
        return f"bytes {self.start}-{last}/{self.file_size}"


def guess_content_type(filename: str) -> str:
    """Content type from a file extension, application/octet-stream when unknown."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


def plan_download(
    data_root: Union[str, Path],
    relative_path: str,
    range_header: Optional[str] = None,
) -> DownloadPlan:
    """
    Resolve a download request and the byte range to serve.

    Args:
        data_root: Served directory
        relative_path: URL-decoded client path
        range_header: Value of the Range header, if any

    Returns:
        DownloadPlan

    Raises:
        PathTraversal: If the path escapes the root
        NotFound: If the file does not exist
        NotAFile: If the path is a directory or special file
        InvalidRange: If the Range header is malformed
        RangeNotSatisfiable: On multiple ranges, suffix ranges or a start past the end
    """
    path = path_resolver.resolve(data_root, relative_path)
    try:
        st = os.stat(path)
    except OSError as e:
        raise translate_os_error(e, relative_path) from e

    if not stat.S_ISREG(st.st_mode):
        raise NotAFile(f"Cannot download '{relative_path}': not a regular file", path=relative_path)

    plan = DownloadPlan(
        path=path,
        filename=path.name,
        content_type=guess_content_type(path.name),
        file_size=st.st_size,
    )
    if range_header is None:
        return plan

    ranges = parse_ranges(range_header)
    logger.info(f"Requested ranges for '{relative_path}': {ranges}")
    if len(ranges) != 1:
        raise RangeNotSatisfiable("Multiple ranges in one request are not supported", path=relative_path)

    start, end = ranges[0]
    if start is None:
        raise RangeNotSatisfiable("Range without a start offset is not supported", path=relative_path)
    if start >= plan.file_size:
        raise RangeNotSatisfiable("The range start is past the end of the file", path=relative_path)
    if end is not None:
        end = min(end, plan.file_size - 1)

    return DownloadPlan(
        path=plan.path,
        filename=plan.filename,
        content_type=plan.content_type,
        file_size=plan.file_size,
        start=start,
        end=end,
        partial=True,
    )


def open_download(plan: DownloadPlan) -> BinaryIO:
    """
    Open the planned file before any response header is sent.

    Raises:
        NotFound: If the file vanished since planning
        PermissionDenied: If it can no longer be read
    """
    try:
        return open(plan.path, "rb")
    except OSError as e:
        raise translate_os_error(e, plan.filename) from e


def iter_file(source: BinaryIO, start: int, length: int, chunk_size: int) -> Iterator[bytes]:
    """
    Read ``length`` bytes of an open file from ``start`` in bounded chunks.

    Stops early if the file shrank. The file is closed when the generator is.
    """
    with source as f:
        f.seek(start)
        remaining = length
        while remaining > 0:
            chunk = f.read(min(chunk_size, remaining))
            if not chunk:
                logger.warning(f"'{f.name}' shrank while being sent")
                break
            remaining -= len(chunk)
            yield chunk
