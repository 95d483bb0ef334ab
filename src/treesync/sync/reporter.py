"""Progress lines and report formatting.

The engine never talks to a notification transport directly.  It writes
human-readable lines to a ``LineSink``, anything with an
``append(line)`` method:

- ``LoggingLineSink`` -- forwards each line to the ``treesync.sync``
  logger at INFO, so every configured handler (stderr, log file) sees it.
- ``MemoryLineSink`` -- keeps the lines in a list.

Formatting helpers:

- ``summary_lines`` -- the per-run counter summary, one line each.
- ``format_sync_report`` -- full post-sync summary as one string.
- ``report_to_json`` -- structured dict for machine consumption.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import SyncReport

# ------------------------------------------------------------------
# Line sinks
# ------------------------------------------------------------------


class LineSink(Protocol):
    """Capability to receive one progress or summary line."""

    def append(self, line: str) -> None:
        ...  # pragma: no cover


class LoggingLineSink:
    """Forward lines to a logger."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        level: int = logging.INFO,
    ) -> None:
        self.logger = logger or logging.getLogger("treesync.sync")
        self.level = level

    def append(self, line: str) -> None:
        self.logger.log(self.level, "%s", line)


class MemoryLineSink:
    """Collect lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def append(self, line: str) -> None:
        self.lines.append(line)

    def __contains__(self, line: str) -> bool:
        return line in self.lines

    def matching(self, prefix: str) -> list[str]:
        """Return all lines starting with *prefix*."""
        return [line for line in self.lines if line.startswith(prefix)]


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def summary_lines(report: SyncReport) -> list[str]:
    """Return the counter summary as individual lines."""
    c = report.counters
    return [
        f"Subdirectories compared: {c.get('dirs_compared', 0)}",
        f"  Subdirectories copied to destination: {c.get('dirs_copied_to_destination', 0)}",
        f"  Subdirectories copied to source: {c.get('dirs_copied_to_source', 0)}",
        f"  Subdirectories deleted from destination: {c.get('dirs_deleted_from_destination', 0)}",
        f"  Subdirectories deleted from source: {c.get('dirs_deleted_from_source', 0)}",
        f"Files compared: {c.get('files_compared', 0)}",
        f"  Files copied to destination: {c.get('files_copied_to_destination', 0)}",
        f"  Files copied to source: {c.get('files_copied_to_source', 0)}",
        f"  Files deleted from destination: {c.get('files_deleted_from_destination', 0)}",
        f"  Files deleted from source: {c.get('files_deleted_from_source', 0)}",
    ]


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Sync report for {report.source} <-> {report.destination}"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    if report.previous_sync:
        lines.append(f"Previous sync: {report.previous_sync}")
    else:
        lines.append("Previous sync: never")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.extend(summary_lines(report))
    lines.append("")

    if report.total_copied == 0 and report.total_deleted == 0:
        lines.append("No changes needed.")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with roots, timestamps, totals and per-counter values.
    """
    return {
        "source": report.source,
        "destination": report.destination,
        "dry_run": report.dry_run,
        "previous_sync": report.previous_sync,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "totals": {
            "copied": report.total_copied,
            "deleted": report.total_deleted,
        },
        "counts": dict(report.counters),
    }
