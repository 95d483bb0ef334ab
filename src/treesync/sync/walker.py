"""Recursive tree walker.

Pairs the listings of one source directory and one destination
directory by name, resolves every entry, applies history changes and
actions, then descends into subdirectories that exist on both sides.

Each call to ``walk()`` owns its listings; nothing is shared between
recursion levels.  All entries of a directory are fully processed
before any of its subdirectories is entered.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from treesync.exceptions import TraversalError
from treesync.sync.actuator import FilesystemActuator
from treesync.sync.models import (
    Decision,
    DirectoryEntry,
    HistoryChange,
    Resolution,
    Side,
    SyncCounters,
    SyncOptions,
)
from treesync.sync.reporter import LineSink
from treesync.sync.resolver import plan_action, resolve
from treesync.sync.state import HistoryStore

logger = logging.getLogger(__name__)


def list_directory(directory: Path) -> dict[str, DirectoryEntry]:
    """Return the immediate entries of *directory* keyed by name.

    Entries are ordered by name.

    Raises:
        TraversalError: If the directory cannot be listed or an entry
            cannot be stat-ed.
    """
    try:
        with os.scandir(directory) as it:
            entries = [DirectoryEntry.from_dir_entry(e) for e in it]
    except OSError as exc:
        raise TraversalError(f"Cannot list {directory}: {exc}") from exc
    return {e.name: e for e in sorted(entries, key=lambda e: e.name)}


class TreeWalker:
    """Walk a source/destination directory pair.

    Args:
        store: Open history store.
        root_id: Id of the registered source root.
        options: Run flags.
        actuator: Applies actions and updates copy/delete counters.
        counters: Counters for compared entries.
        sink: Receives progress lines.
    """

    def __init__(
        self,
        store: HistoryStore,
        root_id: int,
        options: SyncOptions,
        actuator: FilesystemActuator,
        counters: SyncCounters,
        sink: LineSink,
    ) -> None:
        self.store = store
        self.root_id = root_id
        self.options = options
        self.actuator = actuator
        self.counters = counters
        self.sink = sink

    def walk(self, source_dir: Path, dest_dir: Path) -> None:
        """Synchronize *source_dir* with *dest_dir* recursively."""
        logger.debug("Listing %s and %s", source_dir, dest_dir)
        source_entries = list_directory(source_dir)
        dest_entries = list_directory(dest_dir)

        recurse: list[tuple[Path, Path]] = []

        logger.debug("Sync source side of %s", source_dir)
        for name, src in source_entries.items():
            dest = dest_entries.pop(name, None)

            ignored = self._ignored_path(src, dest)
            if ignored is not None:
                self.sink.append(f"Ignoring {ignored}")
                continue

            decision = self._process(
                Side.SOURCE, src, dest, src.path, source_dir, dest_dir
            )

            if src.is_dir and dest is not None and decision == Decision.NOOP:
                logger.debug("Adding %s for recursion", src.path)
                recurse.append((src.path, dest.path))

        logger.debug("Sync destination side of %s", dest_dir)
        for name, dest in dest_entries.items():
            ignored = self._ignored_path(dest, None)
            if ignored is not None:
                self.sink.append(f"Ignoring {ignored}")
                continue

            self._process(
                Side.DESTINATION,
                dest,
                None,
                source_dir / name,
                source_dir,
                dest_dir,
            )

        for child_source, child_dest in recurse:
            if not self.options.silent:
                self.sink.append(f"Entering directory {child_source}")
            self.walk(child_source, child_dest)

    # ------------------------------------------------------------------
    # Per-entry processing
    # ------------------------------------------------------------------

    def _ignored_path(
        self, entry: DirectoryEntry, counterpart: DirectoryEntry | None
    ) -> Path | None:
        """Return whichever of the pair is in the ignore set, if any.

        Ignoring either side leaves both sides untouched.
        """
        if self.options.is_ignored(entry.path):
            return entry.path
        if counterpart is not None and self.options.is_ignored(counterpart.path):
            return counterpart.path
        return None

    def _process(
        self,
        side: Side,
        entry: DirectoryEntry,
        counterpart: DirectoryEntry | None,
        history_path: Path,
        source_dir: Path,
        dest_dir: Path,
    ) -> Decision:
        """Resolve and apply one entry; return the decision taken."""
        has_history = self.store.has_history(self.root_id, history_path)

        try:
            resolution = resolve(
                side, entry, counterpart, has_history, self.options
            )
        except OSError as exc:
            raise TraversalError(
                f"Cannot compare {entry.path}: {exc}"
            ) from exc

        if counterpart is not None:
            if entry.is_dir:
                self.counters.dirs_compared += 1
            else:
                self.counters.files_compared += 1

        self._apply_history(resolution, history_path)

        if resolution.sync_attributes and counterpart is not None:
            self.actuator.sync_directory_attributes(entry, counterpart)

        self.actuator.apply(
            plan_action(
                side,
                resolution.decision,
                entry,
                counterpart,
                source_dir,
                dest_dir,
            )
        )
        return resolution.decision

    def _apply_history(self, resolution: Resolution, path: Path) -> None:
        if resolution.history == HistoryChange.RECORD:
            self.store.record_seen(self.root_id, path)
        elif resolution.history == HistoryChange.FORGET:
            self.store.forget(self.root_id, path)
