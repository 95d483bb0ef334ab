"""Data contracts for the synchronization engine.

Defines the types passed between the walker, the resolver, the actuator
and the reporter:

- ``Decision``: the four possible outcomes for one entry.
- ``Side``: which tree an evaluated entry lives in.
- ``HistoryChange``: the history mutation that accompanies a decision.
- ``DirectoryEntry``: one file or directory observed during a walk.
- ``Resolution``: decision plus side effects, as returned by the resolver.
- ``SyncOptions``: immutable run flags.
- ``SyncCounters``: mutable per-run tallies.
- ``SyncReport``: frozen summary of a completed run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class Decision(str, Enum):
    """Resolved action for one filesystem entry."""

    COPY = "copy"
    COPY_DESTINATION = "copy_destination"
    DELETE = "delete"
    NOOP = "noop"


class Side(str, Enum):
    """Tree an entry belongs to."""

    SOURCE = "source"
    DESTINATION = "destination"

    @property
    def opposite(self) -> Side:
        if self is Side.SOURCE:
            return Side.DESTINATION
        return Side.SOURCE


class HistoryChange(str, Enum):
    """History store mutation required by a resolution."""

    NONE = "none"
    RECORD = "record"
    FORGET = "forget"


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class DirectoryEntry(BaseModel):
    """A file or directory observed in one of the two trees.

    Attributes:
        path: Absolute path of the entry.
        name: Final path component.
        kind: File or directory.
        mtime_ns: Modification time in nanoseconds.
        size: Size in bytes (as reported by ``stat``).
    """

    path: Path
    name: str
    kind: EntryKind
    mtime_ns: int
    size: int

    model_config = {"frozen": True}

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> DirectoryEntry:
        """Build from an ``os.scandir`` result, following symlinks."""
        st = entry.stat()
        return cls(
            path=Path(entry.path),
            name=entry.name,
            kind=EntryKind.DIRECTORY if entry.is_dir() else EntryKind.FILE,
            mtime_ns=st.st_mtime_ns,
            size=st.st_size,
        )

    @classmethod
    def from_path(cls, path: Path) -> DirectoryEntry:
        """Build from a path, following symlinks."""
        st = path.stat()
        return cls(
            path=path,
            name=path.name,
            kind=EntryKind.DIRECTORY if path.is_dir() else EntryKind.FILE,
            mtime_ns=st.st_mtime_ns,
            size=st.st_size,
        )


class Resolution(BaseModel):
    """Outcome of resolving one entry.

    Attributes:
        decision: The action to take.
        history: History mutation to apply under the source-side path.
        sync_attributes: True when the counterpart directory should take
            the evaluated directory's modification time.
    """

    decision: Decision
    history: HistoryChange = HistoryChange.NONE
    sync_attributes: bool = False

    model_config = {"frozen": True}


class SyncOptions(BaseModel):
    """Flags fixed for the duration of a run."""

    dry_run: bool = False
    hashing: bool = False
    ignore_directory_attributes: bool = False
    silent: bool = False
    ignore_paths: frozenset[Path] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    def is_ignored(self, path: Path) -> bool:
        return path in self.ignore_paths


@dataclass
class SyncCounters:
    """Per-run tallies, incremented once per processed entry."""

    dirs_compared: int = 0
    files_compared: int = 0
    dirs_copied_to_destination: int = 0
    dirs_copied_to_source: int = 0
    files_copied_to_destination: int = 0
    files_copied_to_source: int = 0
    dirs_deleted_from_source: int = 0
    dirs_deleted_from_destination: int = 0
    files_deleted_from_source: int = 0
    files_deleted_from_destination: int = 0

    @property
    def dirs_copied(self) -> int:
        return self.dirs_copied_to_destination + self.dirs_copied_to_source

    @property
    def files_copied(self) -> int:
        return self.files_copied_to_destination + self.files_copied_to_source

    @property
    def dirs_deleted(self) -> int:
        return self.dirs_deleted_from_source + self.dirs_deleted_from_destination

    @property
    def files_deleted(self) -> int:
        return (
            self.files_deleted_from_source
            + self.files_deleted_from_destination
        )

    def count_copy(self, entry: DirectoryEntry, target_side: Side) -> None:
        kind = "dirs" if entry.is_dir else "files"
        self._bump(f"{kind}_copied_to_{target_side.value}")

    def count_delete(self, entry: DirectoryEntry, side: Side) -> None:
        kind = "dirs" if entry.is_dir else "files"
        self._bump(f"{kind}_deleted_from_{side.value}")

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def _bump(self, name: str) -> None:
        setattr(self, name, getattr(self, name) + 1)


class SyncReport(BaseModel):
    """Aggregate report for a full sync run.

    Attributes:
        source: Canonical source root.
        destination: Canonical destination root.
        dry_run: Whether this was a dry-run (no changes applied).
        counters: Final tallies.
        previous_sync: Last-sync timestamp recorded before this run, or
            ``None`` for a first run.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    source: str
    destination: str
    dry_run: bool = False
    counters: dict[str, int] = {}
    previous_sync: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def total_copied(self) -> int:
        return sum(
            v for k, v in self.counters.items() if "_copied_to_" in k
        )

    @property
    def total_deleted(self) -> int:
        return sum(
            v for k, v in self.counters.items() if "_deleted_from_" in k
        )
