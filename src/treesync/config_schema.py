"""Configuration schema for treesync.

Pydantic models for the YAML config structure, with one section for the
synchronization options and one for logging.

Usage:
    from treesync.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Synchronization settings.

    All fields have defaults so CLI args and env vars can supply them at
    runtime instead.
    """

    database: str | None = Field(
        default=None,
        description="History store: SQLAlchemy URL or SQLite file path",
    )
    dry_run: bool = Field(
        default=False, description="Report changes without applying them"
    )
    hashing: bool = Field(
        default=False, description="Compare equal-metadata files by MD5"
    )
    ignore_directory_attributes: bool = Field(
        default=False,
        description="Do not copy directory modification times",
    )
    silent: bool = Field(
        default=False,
        description="Suppress 'No operation' and 'Entering directory' lines",
    )
    ignore: list[str] = Field(
        default_factory=list,
        description="Absolute paths excluded on both sides",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        rolling: Rotate the log file at 10 MB.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    rolling: bool = Field(default=False, description="Rotate log file")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level configuration.

    ``UnifiedConfig()`` (zero-config) is always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a section has invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
