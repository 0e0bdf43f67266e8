"""Tests for the streaming archive engine."""

import io
import os
import tracemalloc
import zipfile

import pytest

from dirserve.core.errors import (
    EmptySelection,
    IoFailure,
    NotADirectory,
    NotFound,
    PathTraversal,
    SinkWriteFailure,
)
from dirserve.services.archive_service import ArchiveStreamer, stream_archive


class CountingSink:
    """Sink that keeps only sizes, never the data."""

    def __init__(self):
        self.total = 0
        self.largest = 0
        self.writes = 0

    def write(self, chunk: bytes) -> None:
        self.total += len(chunk)
        self.largest = max(self.largest, len(chunk))
        self.writes += 1


class FailingSink:
    """Sink whose client goes away after a number of writes."""

    def __init__(self, fail_after: int):
        self.fail_after = fail_after
        self.writes = 0
        self.writes_after_failure = 0
        self.failed = False

    def write(self, chunk: bytes) -> None:
        if self.failed:
            self.writes_after_failure += 1
        self.writes += 1
        if self.writes > self.fail_after:
            self.failed = True
            raise SinkWriteFailure("Client disconnected")


def open_zip(sink) -> zipfile.ZipFile:
    archive = zipfile.ZipFile(io.BytesIO(sink.getvalue()))
    assert archive.testzip() is None
    return archive


def test_round_trip_selection(data_root, memory_sink, tmp_path):
    """Selecting a file and a directory extracts exactly those."""
    report = stream_archive(data_root, {"a.txt", "sub"}, memory_sink)

    archive = open_zip(memory_sink)
    assert archive.namelist() == ["a.txt", "sub/", "sub/c.txt"]
    assert archive.read("a.txt") == b"aaa"
    assert archive.read("sub/c.txt") == b"c"
    assert report.entries_written == 3
    assert report.bytes_read == 4
    assert report.skipped == []
    assert report.bytes_sent == memory_sink.bytes_written

    extracted = tmp_path / "extracted"
    archive.extractall(extracted)
    assert (extracted / "a.txt").read_bytes() == b"aaa"
    assert (extracted / "sub" / "c.txt").read_bytes() == b"c"
    assert not (extracted / "b.txt").exists()


def test_emission_order_is_sorted(data_root, memory_sink):
    """Input order does not matter and duplicates collapse."""
    stream_archive(data_root, ["sub", "b.txt", "a.txt", "b.txt"], memory_sink)
    assert open_zip(memory_sink).namelist() == ["a.txt", "b.txt", "sub/", "sub/c.txt"]


def test_nested_directories_keep_structure(data_root, memory_sink):
    """Directories recurse depth-first under their own name."""
    deep = data_root / "sub" / "deeper"
    deep.mkdir()
    (deep / "d.txt").write_bytes(b"dd")
    (data_root / "sub" / "b-first.txt").write_bytes(b"b")

    stream_archive(data_root, ["sub"], memory_sink)
    assert open_zip(memory_sink).namelist() == [
        "sub/",
        "sub/b-first.txt",
        "sub/c.txt",
        "sub/deeper/",
        "sub/deeper/d.txt",
    ]


def test_selection_in_subdirectory(data_root, memory_sink):
    """Archive paths are relative to the base directory."""
    stream_archive(data_root / "sub", ["c.txt"], memory_sink, data_root=data_root)
    assert open_zip(memory_sink).namelist() == ["c.txt"]


def test_unknown_name_fails_before_any_byte(data_root, memory_sink):
    """A name that is not a child fails validation with nothing written."""
    with pytest.raises(NotFound):
        stream_archive(data_root, ["a.txt", "missing.txt"], memory_sink)
    assert memory_sink.bytes_written == 0


def test_nested_name_is_not_a_child(data_root, memory_sink):
    """Only immediate children may be selected."""
    with pytest.raises(PathTraversal):
        stream_archive(data_root, ["sub/c.txt"], memory_sink)
    assert memory_sink.bytes_written == 0


@pytest.mark.parametrize("name", ["..", "../outside", ".", "/etc/passwd"])
def test_traversal_names_fail_before_any_byte(data_root, memory_sink, name):
    """Traversal names are rejected up front."""
    with pytest.raises(PathTraversal):
        stream_archive(data_root, ["a.txt", name], memory_sink)
    assert memory_sink.bytes_written == 0


def test_selected_symlink_escape_is_rejected(data_root, outside_dir, memory_sink):
    """A selected symlink leaving the root fails validation."""
    os.symlink(outside_dir, data_root / "escape")
    with pytest.raises(PathTraversal):
        stream_archive(data_root, ["escape"], memory_sink)
    assert memory_sink.bytes_written == 0


def test_empty_selection(data_root, memory_sink):
    """Nothing selected is a client error."""
    with pytest.raises(EmptySelection):
        stream_archive(data_root, [], memory_sink)
    with pytest.raises(EmptySelection):
        stream_archive(data_root, [""], memory_sink)


def test_base_must_be_directory(data_root, memory_sink):
    """The base of a selection must be a directory."""
    with pytest.raises(NotADirectory):
        stream_archive(data_root / "a.txt", ["x"], memory_sink, data_root=data_root)


def test_entry_vanishing_after_validation_is_skipped(data_root, memory_sink):
    """Files deleted between validation and streaming are left out."""
    streamer = ArchiveStreamer(data_root)
    selected = streamer.prepare(data_root, ["a.txt", "b.txt"])
    (data_root / "a.txt").unlink()

    report = streamer.write(data_root, selected, memory_sink)

    assert report.skipped == ["a.txt"]
    archive = open_zip(memory_sink)
    assert archive.namelist() == ["b.txt"]
    assert archive.read("b.txt") == b"bbbbb"


def test_unreadable_child_is_skipped(data_root, memory_sink):
    """Broken entries met while walking are skipped, the archive stays valid."""
    os.symlink(data_root / "nowhere", data_root / "sub" / "dangling")

    report = stream_archive(data_root, ["sub"], memory_sink)

    assert report.skipped == ["sub/dangling"]
    assert open_zip(memory_sink).namelist() == ["sub/", "sub/c.txt"]


def test_nested_symlink_escape_is_skipped(data_root, outside_dir, memory_sink):
    """Symlinks inside a selected directory cannot pull in outside files."""
    os.symlink(outside_dir / "secret.txt", data_root / "sub" / "secret.txt")
    os.symlink(outside_dir, data_root / "sub" / "outside")

    report = stream_archive(data_root, ["sub"], memory_sink)

    assert sorted(report.skipped) == ["sub/outside", "sub/secret.txt"]
    assert open_zip(memory_sink).namelist() == ["sub/", "sub/c.txt"]


def test_symlink_cycle_is_skipped(data_root, memory_sink):
    """A directory symlink back to an ancestor is not followed."""
    os.symlink(data_root / "sub", data_root / "sub" / "loop")

    report = stream_archive(data_root, ["sub"], memory_sink)

    assert report.skipped == ["sub/loop"]
    assert open_zip(memory_sink).namelist() == ["sub/", "sub/c.txt"]


def test_sink_failure_stops_the_walk(tmp_path):
    """A disconnected client stops the engine without further writes."""
    for i in range(20):
        (tmp_path / f"file{i:02d}.bin").write_bytes(os.urandom(4096))
    sink = FailingSink(fail_after=3)

    with pytest.raises(SinkWriteFailure):
        stream_archive(tmp_path, [f"file{i:02d}.bin" for i in range(20)], sink, chunk_size=1024)

    assert sink.failed
    assert sink.writes_after_failure == 0


def test_read_error_aborts_stream(data_root, memory_sink, monkeypatch):
    """An I/O error inside a file aborts without a central directory."""
    streamer = ArchiveStreamer(data_root)
    selected = streamer.prepare(data_root, ["a.txt", "b.txt"])

    real_open = open

    class BrokenFile(io.BufferedReader):
        def read(self, size=-1):
            raise OSError(5, "Input/output error")

    def broken_open(path, mode="r", *args, **kwargs):
        handle = real_open(path, mode, *args, **kwargs)
        if str(path).endswith("b.txt"):
            handle.close()
            return BrokenFile(io.BytesIO(b""))
        return handle

    monkeypatch.setattr("builtins.open", broken_open)
    with pytest.raises(IoFailure):
        streamer.write(data_root, selected, memory_sink)
    monkeypatch.undo()

    with pytest.raises(zipfile.BadZipFile):
        zipfile.ZipFile(io.BytesIO(memory_sink.getvalue()))


def test_deflated_archive(data_root, memory_sink):
    """Deflate compression produces an equally valid archive."""
    (data_root / "big.txt").write_bytes(b"abc" * 100_000)

    stream_archive(data_root, ["big.txt", "sub"], memory_sink, compression="deflated")

    archive = open_zip(memory_sink)
    assert archive.getinfo("big.txt").compress_type == zipfile.ZIP_DEFLATED
    assert archive.read("big.txt") == b"abc" * 100_000
    assert memory_sink.bytes_written < 300_000


def test_large_sparse_file_streams_in_constant_memory(tmp_path):
    """Memory does not grow with file size, chunks stay bounded."""
    size = 64 * 1024 * 1024
    with open(tmp_path / "sparse.bin", "wb") as f:
        f.truncate(size)
    sink = CountingSink()
    chunk_size = 64 * 1024

    tracemalloc.start()
    try:
        report = stream_archive(tmp_path, ["sparse.bin"], sink, chunk_size=chunk_size)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    assert report.bytes_read == size
    assert sink.total > size
    assert sink.largest <= chunk_size
    assert peak < 8 * 1024 * 1024


def test_undecodable_name_is_skipped(data_root, memory_sink, undecodable_file):
    """Names zipfile cannot encode are skipped, the rest of the walk continues."""
    name = undecodable_file(data_root / "sub")

    report = stream_archive(data_root, ["a.txt", "sub"], memory_sink)

    assert report.skipped == [f"sub/{name}"]
    assert open_zip(memory_sink).namelist() == ["a.txt", "sub/", "sub/c.txt"]
