"""History store persistence layer.

Keeps the per-source-root record of every path seen at the end of a
previous run.  Presence of a ``HistoryEntry`` row is the only signal the
resolver needs: it tells an entry that was deleted on the other side
apart from an entry that is new on this side.

Key design choices:

* **Auto-committed writes** -- every insert, delete and timestamp update
  is committed on its own, so a run that aborts halfway leaves all
  completed work on disk.
* **Dry-run guard** -- ``record_seen()``, ``forget()``, ``touch_root()``
  and the insert in ``resolve_root()`` return without writing when the
  store was opened with ``dry_run=True``.
* **Fail-fast** -- any ``SQLAlchemyError`` is re-raised as
  ``StoreConnectionError`` (open) or ``StoreError`` (queries).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import delete, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from treesync.exceptions import StoreConnectionError, StoreError
from treesync.sync.database import (
    HistoryEntry,
    SourceRoot,
    create_store_engine,
    init_db,
)

logger = logging.getLogger(__name__)

#: Root id handed out under dry-run when the root has never been stored.
DRY_RUN_ROOT_ID = -1


class HistoryStore:
    """Query and update the synchronization history.

    Args:
        database_url: SQLAlchemy URL, e.g. ``sqlite:///treesync.db``.
        dry_run: If ``True``, all writes become no-ops.
    """

    def __init__(self, database_url: str, dry_run: bool = False) -> None:
        self.database_url = database_url
        self.dry_run = dry_run
        self._engine: Engine | None = None
        self._session: Session | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> HistoryStore:
        """Connect and create the schema if it is missing."""
        logger.info("Connecting to database \"%s\"", self.database_url)
        try:
            self._engine = create_store_engine(self.database_url)
            init_db(self._engine)
            self._session = Session(self._engine, expire_on_commit=False)
        except SQLAlchemyError as exc:
            self.close()
            raise StoreConnectionError(
                f"Cannot open history store {self.database_url}: {exc}"
            ) from exc
        return self

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> HistoryStore:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._session is not None

    # ------------------------------------------------------------------
    # Source roots
    # ------------------------------------------------------------------

    def resolve_root(self, path: Path) -> int:
        """Return the id registered for *path*, registering it if needed.

        Under dry-run an unknown root is not inserted and
        ``DRY_RUN_ROOT_ID`` is returned instead.
        """
        key = str(path)
        with self._query("resolve source root"):
            root = self._db.scalar(
                select(SourceRoot).where(SourceRoot.path == key).limit(1)
            )
            if root is not None:
                logger.info("Last sync for source path: %s", root.last_sync)
                return root.id

            logger.info("Inserting new source path into database: %s", key)
            if self.dry_run:
                return DRY_RUN_ROOT_ID

            root = SourceRoot(path=key, last_sync=_now())
            self._db.add(root)
            self._db.commit()
            return root.id

    def lookup_root(self, path: Path) -> tuple[int, datetime] | None:
        """Return ``(id, last_sync)`` for *path*, or ``None`` if unknown."""
        with self._query("read source root"):
            row = self._db.execute(
                select(SourceRoot.id, SourceRoot.last_sync)
                .where(SourceRoot.path == str(path))
                .limit(1)
            ).first()
            if row is None:
                return None
            return row.id, row.last_sync

    def touch_root(self, root_id: int) -> None:
        """Set the last-sync timestamp of *root_id* to now."""
        if self.dry_run:
            return
        with self._query("update source root"):
            root = self._db.get(SourceRoot, root_id)
            if root is None:
                return
            root.last_sync = _now()
            self._db.commit()

    # ------------------------------------------------------------------
    # History entries
    # ------------------------------------------------------------------

    def has_history(self, root_id: int, path: Path) -> bool:
        with self._query("read history"):
            found = self._db.scalar(
                select(HistoryEntry.path)
                .where(
                    HistoryEntry.path == str(path),
                    HistoryEntry.source_id == root_id,
                )
                .limit(1)
            )
            return found is not None

    def record_seen(self, root_id: int, path: Path) -> None:
        """Insert a history entry for *path*.  Idempotent."""
        if self.dry_run:
            return
        with self._query("insert history"):
            key = str(path)
            if self._db.get(HistoryEntry, (key, root_id)) is not None:
                return
            self._db.add(HistoryEntry(path=key, source_id=root_id))
            self._db.commit()

    def forget(self, root_id: int, path: Path) -> None:
        """Delete the history entry for *path* and everything below it.

        Idempotent.
        """
        if self.dry_run:
            return
        key = str(path)
        with self._query("delete history"):
            self._db.execute(
                delete(HistoryEntry).where(
                    HistoryEntry.source_id == root_id,
                    or_(
                        HistoryEntry.path == key,
                        HistoryEntry.path.startswith(
                            key + os.sep, autoescape=True
                        ),
                    ),
                )
            )
            self._db.commit()

    def history_paths(self, root_id: int) -> list[str]:
        """Return every recorded path for *root_id*, sorted."""
        with self._query("list history"):
            return list(
                self._db.scalars(
                    select(HistoryEntry.path)
                    .where(HistoryEntry.source_id == root_id)
                    .order_by(HistoryEntry.path)
                )
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _db(self) -> Session:
        if self._session is None:
            raise StoreError("History store is not open")
        return self._session

    @contextmanager
    def _query(self, what: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            if self._session is not None:
                self._session.rollback()
            raise StoreError(f"History store failed to {what}: {exc}") from exc


def _now() -> datetime:
    return datetime.now(timezone.utc)
