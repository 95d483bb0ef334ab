"""Shared pytest fixtures for treesync tests."""

import os
from pathlib import Path

import pytest

from treesync.sync.models import DirectoryEntry
from treesync.sync.reporter import MemoryLineSink


def _set_mtime(path: Path, mtime_ns: int) -> None:
    os.utime(path, ns=(mtime_ns, mtime_ns))


def _write_file(
    path: Path, content: str = "", mtime_ns: int | None = None
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime_ns is not None:
        _set_mtime(path, mtime_ns)
    return path


@pytest.fixture
def set_mtime():
    """Set access and modification time of a path, in nanoseconds."""
    return _set_mtime


@pytest.fixture
def write_file():
    """Create a file (and its parents), optionally with a fixed mtime."""
    return _write_file


@pytest.fixture
def roots(tmp_path):
    """Empty source and destination roots, canonicalized."""
    source = tmp_path / "source"
    dest = tmp_path / "dest"
    source.mkdir()
    dest.mkdir()
    return source.resolve(), dest.resolve()


@pytest.fixture
def database_url(tmp_path):
    """SQLite URL for a history database inside tmp_path."""
    return f"sqlite:///{tmp_path / 'history.db'}"


@pytest.fixture
def sink():
    return MemoryLineSink()


@pytest.fixture
def make_entry():
    """Build a DirectoryEntry from a real path."""

    def _make(path: Path) -> DirectoryEntry:
        return DirectoryEntry.from_path(path)

    return _make
