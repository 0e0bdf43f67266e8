"""Pytest configuration and fixtures."""

import os
import sys

import pytest
from fastapi.testclient import TestClient

from dirserve.config import get_settings
from dirserve.services.sinks import MemorySink


@pytest.fixture
def data_root(tmp_path):
    """
    Create a small data directory.

    Layout:
        a.txt      (3 bytes)
        b.txt      (5 bytes)
        sub/c.txt  (1 byte)
    """
    root = tmp_path / "data"
    root.mkdir()
    (root / "a.txt").write_bytes(b"aaa")
    (root / "b.txt").write_bytes(b"bbbbb")
    sub = root / "sub"
    sub.mkdir()
    (sub / "c.txt").write_bytes(b"c")
    return root.resolve()


@pytest.fixture
def outside_dir(tmp_path):
    """Directory next to the data root, never reachable through it."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_bytes(b"secret")
    return outside.resolve()


@pytest.fixture
def undecodable_file():
    """
    Factory creating a file whose on-disk name is not valid UTF-8.

    Returns the str form os.listdir reports for it (surrogate-escaped).
    """
    if sys.getfilesystemencoding().lower() != "utf-8":
        pytest.skip("needs a UTF-8 filesystem encoding")

    def make(directory):
        name = os.fsdecode(b"bad\xff.txt")
        try:
            (directory / name).write_bytes(b"x")
        except OSError:
            pytest.skip("filesystem rejects names that are not UTF-8")
        return name

    return make


@pytest.fixture
def memory_sink():
    """In-memory archive sink."""
    return MemorySink()


@pytest.fixture
def client(data_root, monkeypatch):
    """Test client serving the data_root fixture."""
    monkeypatch.setenv("DIRSERVE_DATA_DIR", str(data_root))
    monkeypatch.delenv("DIRSERVE_BASE_URL", raising=False)
    get_settings.cache_clear()

    from dirserve.main import app

    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()
