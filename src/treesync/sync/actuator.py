"""Filesystem actuator: carry out planned actions.

Every branch reports its intent to the line sink and bumps the run
counters.  The filesystem is only touched when the run is not a
dry-run.  Any ``OSError`` is fatal and surfaces as ``ActuationError``.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from treesync.exceptions import ActuationError
from treesync.sync.models import (
    Decision,
    DirectoryEntry,
    SyncCounters,
    SyncOptions,
)
from treesync.sync.reporter import LineSink
from treesync.sync.resolver import PlannedAction

logger = logging.getLogger(__name__)


class FilesystemActuator:
    """Apply decisions to the two trees.

    Args:
        options: Run flags (``dry_run`` and ``silent`` are used here).
        counters: Counters updated for every copy and delete.
        sink: Receives one line per action.
    """

    def __init__(
        self,
        options: SyncOptions,
        counters: SyncCounters,
        sink: LineSink,
    ) -> None:
        self.options = options
        self.counters = counters
        self.sink = sink

    def apply(self, action: PlannedAction) -> None:
        """Execute *action*, or only report it under dry-run."""
        try:
            if action.decision == Decision.NOOP:
                if not self.options.silent:
                    self.sink.append(f"No operation for {action.entry.path}")
                return

            if action.decision in (Decision.COPY, Decision.COPY_DESTINATION):
                if action.target_directory is None:
                    raise ValueError(
                        f"{action.decision.value} for {action.entry.path} "
                        "has no target directory"
                    )
                self._copy(action.entry, action.target_directory)
                self.counters.count_copy(action.entry, action.target_side)
                return

            if action.decision == Decision.DELETE:
                self._delete(action.entry)
                self.counters.count_delete(action.entry, action.target_side)
                return
        except OSError as exc:
            logger.error(
                "%s failed for %s: %s",
                action.decision.value,
                action.entry.path,
                exc,
            )
            raise ActuationError(
                f"Cannot {action.decision.value} {action.entry.path}: {exc}"
            ) from exc

    def sync_directory_attributes(
        self, source: DirectoryEntry, dest: DirectoryEntry
    ) -> None:
        """Give *dest* the modification time of *source*."""
        self.sink.append(f"Setting attributes for {dest.path}")
        if self.options.dry_run:
            return
        try:
            st = dest.path.stat()
            os.utime(dest.path, ns=(st.st_atime_ns, source.mtime_ns))
        except OSError as exc:
            raise ActuationError(
                f"Cannot set attributes for {dest.path}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _copy(self, entry: DirectoryEntry, directory: Path) -> None:
        target = directory / entry.name
        if entry.is_dir:
            self.sink.append(f"Copying directory {entry.path}")
            if self.options.dry_run:
                return
            _remove_mismatched(target, want_dir=True)
            shutil.copytree(
                entry.path,
                target,
                ignore=self._copytree_ignore(entry.path, target),
                dirs_exist_ok=True,
            )
        else:
            self.sink.append(f"Copying file {entry.path}")
            if self.options.dry_run:
                return
            _remove_mismatched(target, want_dir=False)
            shutil.copy2(entry.path, target)

    def _copytree_ignore(self, source_root: Path, target_root: Path):
        """Build a ``copytree`` ignore callable for the ignore set.

        A name is skipped when its path is ignored on either side of
        the copy.
        """

        def ignore(directory: str, names: list[str]) -> set[str]:
            here = Path(directory)
            there = target_root / here.relative_to(source_root)
            skipped = {
                name
                for name in names
                if self.options.is_ignored(here / name)
                or self.options.is_ignored(there / name)
            }
            for name in sorted(skipped):
                self.sink.append(f"Ignoring {here / name}")
            return skipped

        return ignore

    def _delete(self, entry: DirectoryEntry) -> None:
        if entry.is_dir:
            self.sink.append(f"Deleting directory {entry.path}")
        else:
            self.sink.append(f"Deleting file {entry.path}")
        if self.options.dry_run:
            return
        _remove(entry.path)


def _remove(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


def _remove_mismatched(target: Path, want_dir: bool) -> None:
    """Remove *target* when it exists as the other kind of entry."""
    if not (target.exists() or target.is_symlink()):
        return
    if target.is_dir() != want_dir:
        logger.info(
            "Replacing %s with a %s",
            target,
            "directory" if want_dir else "file",
        )
        _remove(target)
