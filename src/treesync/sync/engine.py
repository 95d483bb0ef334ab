"""Sync session that orchestrates one full synchronization run.

The ``SyncEngine`` ties together the history store, the walker, the
resolver and the actuator.  It:

1. Validates and canonicalizes both roots.
2. Opens the history store and resolves the source root's id.
3. Walks the root pair, resolving and applying every entry.
4. Updates the source root's last-sync timestamp.
5. Closes the store and writes the summary lines to the sink.
6. Builds and returns a ``SyncReport``.

Error handling is fail-fast: the first store or filesystem error is
logged and re-raised.  Work committed before the error stays on disk.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from treesync.exceptions import TreeSyncError
from treesync.sync.actuator import FilesystemActuator
from treesync.sync.models import SyncCounters, SyncOptions, SyncReport
from treesync.sync.reporter import LineSink, LoggingLineSink, summary_lines
from treesync.sync.state import HistoryStore
from treesync.sync.walker import TreeWalker
from treesync.validators import canonical_roots

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///treesync.db"


class SyncEngine:
    """Run a bidirectional synchronization between two directories.

    Args:
        source: Source root directory.
        destination: Destination root directory.
        options: Run flags.
        database_url: SQLAlchemy URL of the history store.
        sink: Receives progress and summary lines.  Defaults to a
            ``LoggingLineSink``.
    """

    def __init__(
        self,
        source: str | Path,
        destination: str | Path,
        options: SyncOptions | None = None,
        database_url: str = DEFAULT_DATABASE_URL,
        sink: LineSink | None = None,
    ) -> None:
        self.source = source
        self.destination = destination
        self.options = options or SyncOptions()
        self.database_url = database_url
        self.sink = sink or LoggingLineSink()
        self.counters = SyncCounters()

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self) -> SyncReport:
        """Execute a full synchronization.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.

        Raises:
            TreeSyncError: On any configuration, store or filesystem
                failure.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        self.counters = SyncCounters()
        self._log_options()

        try:
            source_root, dest_root = canonical_roots(
                self.source, self.destination
            )
            with HistoryStore(
                self.database_url, dry_run=self.options.dry_run
            ) as store:
                existing = store.lookup_root(source_root)
                previous = existing[1] if existing else None
                root_id = store.resolve_root(source_root)

                actuator = FilesystemActuator(
                    self.options, self.counters, self.sink
                )
                walker = TreeWalker(
                    store,
                    root_id,
                    self.options,
                    actuator,
                    self.counters,
                    self.sink,
                )

                self.sink.append(
                    f"Synchronizing {source_root} with {dest_root}"
                )
                walker.walk(source_root, dest_root)

                logger.info("Updating source entry in database")
                store.touch_root(root_id)
        except TreeSyncError as exc:
            logger.error("Synchronization aborted: %s", exc)
            raise

        report = SyncReport(
            source=str(source_root),
            destination=str(dest_root),
            dry_run=self.options.dry_run,
            counters=self.counters.as_dict(),
            previous_sync=previous.isoformat() if previous else None,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        for line in summary_lines(report):
            self.sink.append(line)
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _log_options(self) -> None:
        if self.options.dry_run:
            logger.info("Performing dry-run, no changes to the file system")
        if self.options.silent:
            logger.info("Silent logging")
        if self.options.ignore_directory_attributes:
            logger.info("Ignoring directory attributes")
        if self.options.hashing:
            logger.info("Using MD5 hashes to compare files")
        for path in sorted(self.options.ignore_paths):
            logger.info("Ignoring path %s", path)
