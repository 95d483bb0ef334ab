"""Operation decision engine.

``resolve()`` turns one evaluated entry, its counterpart on the other
tree (if any) and the history flag into a ``Resolution``.  It performs
no writes: history mutations and directory attribute syncs are returned
as data and applied by the walker.

The function is symmetric.  The walker calls it once per source entry
with ``side=Side.SOURCE`` and once per destination entry that has no
source counterpart with ``side=Side.DESTINATION``.  ``plan_action()``
then translates the decision back into "which entry goes into which
directory".

Precedence:

1. Counterpart present -- record history if none exists yet.  A file
   facing a directory is settled by modification time alone, the newer
   entry replacing the other.  Directories resolve to ``NOOP``
   (attributes may be synced).  Files
   resolve to ``NOOP`` when equal, ``COPY`` when the evaluated entry is
   strictly newer, ``COPY_DESTINATION`` otherwise (ties go to the
   counterpart).
2. Counterpart absent -- with history the other copy was deleted, so
   ``FORGET`` + ``DELETE``; without history the entry is new, so
   ``RECORD`` + ``COPY``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NamedTuple

from treesync.sync.equality import files_equal
from treesync.sync.models import (
    Decision,
    DirectoryEntry,
    HistoryChange,
    Resolution,
    Side,
    SyncOptions,
)

logger = logging.getLogger(__name__)


def resolve(
    side: Side,
    entry: DirectoryEntry,
    counterpart: DirectoryEntry | None,
    has_history: bool,
    options: SyncOptions,
) -> Resolution:
    """Determine what to do with *entry*.

    Args:
        side: Tree that *entry* belongs to.
        entry: The entry being evaluated.
        counterpart: Same-named entry on the other tree, or ``None``.
        has_history: Whether the source-side path has a history entry.
        options: Run flags (hashing, directory attribute handling).

    Returns:
        The resolved decision with its history change.

    Raises:
        OSError: If hashing is enabled and a file cannot be read.
    """
    logger.debug(
        "Resolving %s entry %s (counterpart=%s, history=%s)",
        side.value,
        entry.path,
        counterpart is not None,
        has_history,
    )

    if counterpart is not None:
        history = HistoryChange.NONE if has_history else HistoryChange.RECORD

        # A file on one side and a directory on the other: newer wins.
        if entry.kind != counterpart.kind:
            if entry.mtime_ns > counterpart.mtime_ns:
                return Resolution(decision=Decision.COPY, history=history)
            return Resolution(
                decision=Decision.COPY_DESTINATION, history=history
            )

        if entry.is_dir:
            sync_attributes = (
                not options.ignore_directory_attributes
                and entry.mtime_ns != counterpart.mtime_ns
            )
            return Resolution(
                decision=Decision.NOOP,
                history=history,
                sync_attributes=sync_attributes,
            )

        if files_equal(entry, counterpart, hashing=options.hashing):
            return Resolution(decision=Decision.NOOP, history=history)

        if entry.mtime_ns > counterpart.mtime_ns:
            return Resolution(decision=Decision.COPY, history=history)

        return Resolution(
            decision=Decision.COPY_DESTINATION, history=history
        )

    if has_history:
        return Resolution(
            decision=Decision.DELETE, history=HistoryChange.FORGET
        )

    return Resolution(decision=Decision.COPY, history=HistoryChange.RECORD)


class PlannedAction(NamedTuple):
    """A decision with its roles un-reversed for the actuator.

    Attributes:
        decision: The decision as resolved.
        entry: The entry the actuator operates on.
        target_directory: Directory a copy lands in (``None`` for
            ``DELETE`` and ``NOOP``).
        target_side: Tree that is mutated (or would be, for ``NOOP``).
    """

    decision: Decision
    entry: DirectoryEntry
    target_directory: Path | None
    target_side: Side


def plan_action(
    side: Side,
    decision: Decision,
    entry: DirectoryEntry,
    counterpart: DirectoryEntry | None,
    source_dir: Path,
    dest_dir: Path,
) -> PlannedAction:
    """Translate a decision made for *entry* on *side* into an action.

    ``COPY`` copies the evaluated entry into the other tree's directory,
    ``COPY_DESTINATION`` copies the counterpart into the evaluated
    entry's own directory, ``DELETE`` removes the evaluated entry.
    """
    dirs = {Side.SOURCE: source_dir, Side.DESTINATION: dest_dir}

    if decision == Decision.COPY:
        return PlannedAction(
            decision, entry, dirs[side.opposite], side.opposite
        )

    if decision == Decision.COPY_DESTINATION:
        if counterpart is None:
            raise ValueError(
                f"COPY_DESTINATION for {entry.path} requires a counterpart"
            )
        return PlannedAction(decision, counterpart, dirs[side], side)

    if decision == Decision.DELETE:
        return PlannedAction(decision, entry, None, side)

    return PlannedAction(decision, entry, None, side.opposite)
