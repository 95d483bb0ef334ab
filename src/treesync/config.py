"""Run configuration for treesync.

Reads synchronization settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    TREESYNC_DATABASE: History store URL or SQLite file (default: treesync.db)
    TREESYNC_DRY_RUN: Report changes without applying them (default: false)
    TREESYNC_HASHING: Compare files by MD5 as well (default: false)
    TREESYNC_IGNORE_DIR_ATTRIBUTES: Skip directory mtime sync (default: false)
    TREESYNC_SILENT: Suppress per-entry notices (default: false)
    TREESYNC_DEBUG: Enable debug logging (default: false)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from treesync.sync.models import SyncOptions
from treesync.validators import normalize_ignore_path

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "treesync.db"


@dataclass
class Config:
    database: str = DEFAULT_DATABASE
    dry_run: bool = False
    hashing: bool = False
    ignore_directory_attributes: bool = False
    silent: bool = False
    debug: bool = False
    ignore: list[str] = field(default_factory=list)

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for ``database``.

        A value containing ``://`` is used as-is; anything else is taken
        as a SQLite file path.
        """
        if "://" in self.database:
            return self.database
        path = Path(self.database).expanduser().resolve()
        return f"sqlite:///{path}"

    def to_options(self) -> SyncOptions:
        return SyncOptions(
            dry_run=self.dry_run,
            hashing=self.hashing,
            ignore_directory_attributes=self.ignore_directory_attributes,
            silent=self.silent,
            ignore_paths=frozenset(
                normalize_ignore_path(p) for p in self.ignore
            ),
        )


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the database is empty or an ignore path is relative.
    """
    config.database = config.database.strip()
    if not config.database:
        raise ValueError(
            "History database cannot be empty. Set TREESYNC_DATABASE or pass --dbfile."
        )

    for path in config.ignore:
        if not os.path.isabs(os.path.expanduser(path)):
            raise ValueError(
                f"Invalid ignore path '{path}': must be an absolute path"
            )

    if config.dry_run:
        logger.info("Dry-run requested: no changes will be made")


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _resolve_flag(cli_value: bool, env_key: str, fallback: bool) -> bool:
    """A set CLI switch wins, then the env var, then the YAML value."""
    if cli_value:
        return True
    env_value = _get_bool_env(env_key)
    if env_value is not None:
        return env_value
    return bool(fallback)


def load_config(
    database: str | None = None,
    dry_run: bool = False,
    hashing: bool = False,
    ignore_directory_attributes: bool = False,
    silent: bool = False,
    debug: bool = False,
    ignore: list[str] | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.
    Ignore paths from the CLI and from YAML are combined.

    Args:
        database: Override history database (CLI ``--dbfile``).
        dry_run: CLI switch.
        hashing: CLI switch.
        ignore_directory_attributes: CLI switch.
        silent: CLI switch.
        debug: CLI switch.
        ignore: Ignore paths from the CLI.
        yaml_fallbacks: Dict of values from the YAML ``sync`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is invalid after checking all sources.
    """
    fb = yaml_fallbacks or {}

    final_database = (
        database
        or os.getenv("TREESYNC_DATABASE")
        or fb.get("database")
        or DEFAULT_DATABASE
    )

    combined_ignore: list[str] = list(fb.get("ignore") or [])
    for path in ignore or []:
        if path not in combined_ignore:
            combined_ignore.append(path)

    config = Config(
        database=final_database,
        dry_run=_resolve_flag(
            dry_run, "TREESYNC_DRY_RUN", fb.get("dry_run", False)
        ),
        hashing=_resolve_flag(
            hashing, "TREESYNC_HASHING", fb.get("hashing", False)
        ),
        ignore_directory_attributes=_resolve_flag(
            ignore_directory_attributes,
            "TREESYNC_IGNORE_DIR_ATTRIBUTES",
            fb.get("ignore_directory_attributes", False),
        ),
        silent=_resolve_flag(
            silent, "TREESYNC_SILENT", fb.get("silent", False)
        ),
        debug=_resolve_flag(debug, "TREESYNC_DEBUG", fb.get("debug", False)),
        ignore=combined_ignore,
    )

    validate_config(config)

    return config
