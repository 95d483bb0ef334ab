"""Bidirectional, history-aware directory synchronization engine.

Public API for keeping two locally addressable directory trees in sync.

Architecture
------------
Every run compares the two trees level by level.  A persistent history
of paths seen at the end of earlier runs separates "new on this side"
(copy it over) from "deleted on the other side" (delete it here too).
Files present on both sides are compared by modification time and size
(optionally MD5); the strictly newer side wins, ties go to the
destination.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates a full sync run.
- ``state``     -- ``HistoryStore``: source roots and history entries.
- ``database``  -- SQLAlchemy tables behind the history store.
- ``equality``  -- metadata and MD5 file comparison.
- ``resolver``  -- pure decision function and role un-reversal.
- ``walker``    -- ``TreeWalker``: recursive directory pairing.
- ``actuator``  -- ``FilesystemActuator``: copy/delete/attribute sync.
- ``models``    -- ``Decision``, ``Side``, ``DirectoryEntry``,
  ``Resolution``, ``SyncOptions``, ``SyncCounters``, ``SyncReport``.
- ``reporter``  -- line sinks and report formatting.

Usage example
-------------
::

    from treesync.sync import SyncEngine, SyncOptions, format_sync_report

    # Dry-run first to preview changes
    preview = SyncEngine(
        "/data/laptop",
        "/mnt/backup/laptop",
        options=SyncOptions(dry_run=True),
        database_url="sqlite:///treesync.db",
    ).run()
    print(format_sync_report(preview))

    report = SyncEngine(
        "/data/laptop",
        "/mnt/backup/laptop",
        options=SyncOptions(hashing=True),
        database_url="sqlite:///treesync.db",
    ).run()
    print(format_sync_report(report))
"""

from .engine import SyncEngine
from .models import (
    Decision,
    DirectoryEntry,
    HistoryChange,
    Resolution,
    Side,
    SyncCounters,
    SyncOptions,
    SyncReport,
)
from .reporter import (
    LineSink,
    LoggingLineSink,
    MemoryLineSink,
    format_sync_report,
    report_to_json,
)
from .resolver import plan_action, resolve
from .state import HistoryStore

__all__ = [
    "Decision",
    "DirectoryEntry",
    "HistoryChange",
    "HistoryStore",
    "LineSink",
    "LoggingLineSink",
    "MemoryLineSink",
    "Resolution",
    "Side",
    "SyncCounters",
    "SyncEngine",
    "SyncOptions",
    "SyncReport",
    "format_sync_report",
    "plan_action",
    "report_to_json",
    "resolve",
]
