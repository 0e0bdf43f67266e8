"""Streaming ZIP archive engine."""

import logging
import os
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from dirserve.core.errors import (
    NotADirectory,
    NotFound,
    SinkWriteFailure,
    translate_os_error,
)
from dirserve.services import path_resolver
from dirserve.services.sinks import WriteSink
from dirserve.utils.validators import validate_selection

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

COMPRESSION = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}


@dataclass
class ArchiveReport:
    """Outcome of one archive stream."""

    entries_written: int = 0
    bytes_read: int = 0
    bytes_sent: int = 0
    skipped: list[str] = field(default_factory=list)


class _SinkWriter:
    """
    File-like adapter handed to zipfile.

    It has no tell()/seek(), so zipfile treats it as unseekable and records
    sizes and CRCs in data descriptors after each entry. Bytes are grouped into
    chunks of at most ``chunk_size`` before reaching the sink.
    """

    def __init__(self, sink: WriteSink, chunk_size: int):
        self._sink = sink
        self._chunk_size = chunk_size
        self._buffer = bytearray()
        self._dead = False
        self.bytes_sent = 0

    def write(self, data) -> int:
        size = len(data)
        if self._dead:
            return size
        self._buffer += data
        while len(self._buffer) >= self._chunk_size:
            chunk = bytes(self._buffer[: self._chunk_size])
            del self._buffer[: self._chunk_size]
            self._emit(chunk)
        return size

    def flush(self) -> None:
        if self._buffer and not self._dead:
            chunk = bytes(self._buffer)
            self._buffer.clear()
            self._emit(chunk)

    def abort(self) -> None:
        """Drop buffered and future bytes."""
        self._dead = True
        self._buffer.clear()

    def _emit(self, chunk: bytes) -> None:
        try:
            self._sink.write(chunk)
        except SinkWriteFailure:
            self.abort()
            raise
        self.bytes_sent += len(chunk)


def validate_members(
    data_root: Union[str, Path],
    base_directory: Path,
    names: Iterable[str],
) -> list[tuple[str, Path]]:
    """
    Check a selection against the directory's current children.

    Runs before any archive byte is produced.

    Args:
        data_root: Served directory
        base_directory: Directory the names are children of
        names: Client selection

    Returns:
        (name, absolute path) pairs in name order

    Raises:
        EmptySelection: If nothing was selected
        PathTraversal: If a name is not a single component or escapes the root
        NotFound: If a name is not an immediate child of base_directory
        NotADirectory: If base_directory is not a directory
    """
    selection = validate_selection(names)
    for name in selection:
        path_resolver.check_name(name)

    try:
        members = set(os.listdir(base_directory))
    except NotADirectoryError as e:
        raise NotADirectory(f"Not a directory: {base_directory.name}", path=base_directory.name) from e
    except OSError as e:
        raise translate_os_error(e, base_directory.name) from e

    resolved = []
    for name in selection:
        if name not in members:
            raise NotFound(f"'{name}' is not an entry of '{base_directory.name}'", path=name)
        resolved.append((name, path_resolver.resolve_child(data_root, base_directory, name)))
    return resolved


class ArchiveStreamer:
    """Writes a selection of a directory as one ZIP stream into a sink."""

    def __init__(
        self,
        data_root: Union[str, Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression: str = "stored",
    ):
        """
        Initialize archive streamer.

        Args:
            data_root: Served directory; symlinks leaving it are skipped
            chunk_size: Upper bound of file reads and sink writes
            compression: "stored" or "deflated"
        """
        self.data_root = Path(data_root).resolve()
        self.chunk_size = chunk_size
        self.compression = COMPRESSION[compression]

    def stream(
        self,
        base_directory: Path,
        names: Iterable[str],
        sink: WriteSink,
    ) -> ArchiveReport:
        """
        Validate a selection, then stream it as a ZIP archive.

        Entries that vanish or become unreadable after validation are skipped
        and listed in the report. A read error inside a file already being
        written aborts the stream without its central directory.

        Args:
            base_directory: Directory the selection belongs to
            names: Client selection of immediate children
            sink: Destination of the archive bytes

        Returns:
            ArchiveReport

        Raises:
            DirServeError: Validation errors, raised before any byte is written
            SinkWriteFailure: If the sink stopped accepting bytes
            IoFailure: If reading a file failed mid-entry
        """
        selected = self.prepare(base_directory, names)
        return self.write(base_directory, selected, sink)

    def prepare(self, base_directory: Path, names: Iterable[str]) -> list[tuple[str, Path]]:
        """Validate a selection; see validate_members()."""
        return validate_members(self.data_root, base_directory, names)

    def write(
        self,
        base_directory: Path,
        selected: list[tuple[str, Path]],
        sink: WriteSink,
    ) -> ArchiveReport:
        """
        Stream an already validated selection into a sink.

        Args:
            base_directory: Directory the selection belongs to
            selected: Output of prepare()
            sink: Destination of the archive bytes

        Returns:
            ArchiveReport
        """
        writer = _SinkWriter(sink, self.chunk_size)
        report = ArchiveReport()
        archive = zipfile.ZipFile(writer, mode="w", compression=self.compression, allowZip64=True)
        try:
            for name, path in selected:
                self._add(archive, writer, path, name, report, frozenset())
        except BaseException:
            writer.abort()
            raise
        finally:
            archive.close()

        writer.flush()
        report.bytes_sent = writer.bytes_sent
        logger.info(
            f"Archive of '{base_directory.name}' complete: {report.entries_written} entries, "
            f"{report.bytes_sent:,} bytes, {len(report.skipped)} skipped"
        )
        return report

    def _skip(self, report: ArchiveReport, arcname: str, reason: str) -> None:
        logger.warning(f"Skipping {arcname!r} from archive: {reason}")
        report.skipped.append(arcname)

    def _add(
        self,
        archive: zipfile.ZipFile,
        writer: _SinkWriter,
        path: Path,
        arcname: str,
        report: ArchiveReport,
        ancestors: frozenset,
    ) -> None:
        # zipfile can only store UTF-8 or cp437 names
        if not path_resolver.is_portable_name(arcname):
            self._skip(report, arcname, "name is not valid UTF-8")
            return
        try:
            if path_resolver.escapes_root(self.data_root, path):
                self._skip(report, arcname, "symlink leaves the data root")
                return
            st = os.stat(path)
        except (OSError, RuntimeError) as e:
            self._skip(report, arcname, str(e))
            return

        if stat.S_ISDIR(st.st_mode):
            self._add_directory(archive, writer, path, arcname, st, report, ancestors)
        elif stat.S_ISREG(st.st_mode):
            self._add_file(archive, writer, path, arcname, report)
        else:
            self._skip(report, arcname, "not a regular file")

    def _add_directory(
        self,
        archive: zipfile.ZipFile,
        writer: _SinkWriter,
        path: Path,
        arcname: str,
        st: os.stat_result,
        report: ArchiveReport,
        ancestors: frozenset,
    ) -> None:
        key = (st.st_dev, st.st_ino)
        if key in ancestors:
            self._skip(report, arcname, "symlink cycle")
            return

        try:
            children = sorted(os.listdir(path))
            zinfo = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
        except OSError as e:
            self._skip(report, arcname, str(e))
            return

        archive.writestr(zinfo, b"")
        writer.flush()
        report.entries_written += 1

        for child in children:
            self._add(archive, writer, path / child, f"{arcname}/{child}", report, ancestors | {key})

    def _add_file(
        self,
        archive: zipfile.ZipFile,
        writer: _SinkWriter,
        path: Path,
        arcname: str,
        report: ArchiveReport,
    ) -> None:
        # Stat again right before reading so the header matches what is read
        try:
            zinfo = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
            source = open(path, "rb")
        except OSError as e:
            self._skip(report, arcname, str(e))
            return

        zinfo.compress_type = self.compression
        with source, archive.open(zinfo, mode="w") as dest:
            while True:
                try:
                    chunk = source.read(self.chunk_size)
                except OSError as e:
                    raise translate_os_error(e, arcname) from e
                if not chunk:
                    break
                dest.write(chunk)
                report.bytes_read += len(chunk)

        writer.flush()
        report.entries_written += 1


def stream_archive(
    base_directory: Path,
    selection: Iterable[str],
    sink: WriteSink,
    data_root: Optional[Union[str, Path]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    compression: str = "stored",
) -> ArchiveReport:
    """
    Stream the selected children of a directory as a ZIP archive.

    Args:
        base_directory: Directory the selection belongs to
        selection: Names of immediate children
        sink: Destination of the archive bytes
        data_root: Served directory, defaults to base_directory
        chunk_size: Upper bound of file reads and sink writes
        compression: "stored" or "deflated"

    Returns:
        ArchiveReport
    """
    streamer = ArchiveStreamer(data_root or base_directory, chunk_size, compression)
    return streamer.stream(Path(base_directory), selection, sink)

