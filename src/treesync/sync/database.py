"""SQLAlchemy tables for the history store.

Two related tables:

- ``source`` -- one row per source root ever synchronized.
- ``file`` -- one row per path seen under a source root at the end of a
  previous run.  Rows cascade away with their source root.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class SourceRoot(Base):
    __tablename__ = "source"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    path: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    last_sync: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    def __repr__(self):
        return f"<SourceRoot {self.id}: {self.path} last_sync={self.last_sync}>"


class HistoryEntry(Base):
    __tablename__ = "file"

    path: Mapped[str] = mapped_column(String, primary_key=True)
    source_id: Mapped[int] = mapped_column(
        ForeignKey("source.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        Index("ix_file_path_source", "path", "source_id"),
    )

    def __repr__(self):
        return f"<HistoryEntry {self.source_id}: {self.path}>"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """Create a synchronous engine for *database_url*.

    SQLite connections get foreign key enforcement switched on so the
    ``ON DELETE CASCADE`` on ``file.source_id`` takes effect.
    """
    engine = create_engine(database_url, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
