"""
YAML configuration files for treesync.

Files are looked up by convention, may pull in other files with
``!include`` and may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.  When several files exist their sections are merged
key by key, the more specific file winning.

Usage:
    from treesync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TREESYNC_CONFIG"
CONFIG_DIR_NAME = ".treesync"
CONFIG_FILE_NAMES = ("config.yml", "config.yaml")

_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<default>.*?))?\}")


# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in *value*.

    An unset or empty variable expands to its default, or to ``""``
    without one.  An unterminated ``${`` is kept literally.
    """

    def _expand(match: re.Match) -> str:
        found = os.environ.get(match["name"])
        if found:
            return found
        return match["default"] or ""

    return _REFERENCE.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return list(map(_interpolate_recursive, obj))
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    return obj


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """Safe YAML loader that resolves ``!include other.yml``.

    Relative includes are taken from the including file's directory.
    ``chain`` holds the files currently being loaded, outermost first,
    so a file that includes itself (directly or not) is reported.
    """

    def __init__(self, stream, path: Path, chain: tuple[Path, ...]):
        super().__init__(stream)
        self.path = path
        self.chain = chain

    def construct_include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = self.path.parent / target
        target = target.resolve()

        if target in self.chain:
            cycle = " -> ".join(map(str, (*self.chain, target)))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Include file not found: {target} (referenced from {self.path})"
            )
        return _load_yaml_with_includes(target, _chain=self.chain)


ConfigLoader.add_constructor("!include", ConfigLoader.construct_include)


def _load_yaml_with_includes(
    path: Path, *, _chain: tuple[Path, ...] = ()
) -> Any:
    """Parse one YAML file, following its ``!include`` tags."""
    path = Path(path).resolve()
    with path.open(encoding="utf-8") as fh:
        loader = ConfigLoader(fh, path, (*_chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _candidate_paths() -> Iterator[Path]:
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        yield Path(explicit).expanduser().resolve()
    project_dir = Path.cwd() / CONFIG_DIR_NAME
    for name in CONFIG_FILE_NAMES:
        yield project_dir / name
    yield Path.home() / ".config" / "treesync" / CONFIG_FILE_NAMES[0]


def discover_config_files() -> list[Path]:
    """Return the config files that exist, most specific first.

    Order: ``$TREESYNC_CONFIG``, ``./.treesync/config.yml``,
    ``./.treesync/config.yaml``, ``~/.config/treesync/config.yml``.
    """
    found: list[Path] = []
    for candidate in _candidate_paths():
        if candidate.is_file() and candidate not in found:
            found.append(candidate)
    return found


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# treesync configuration
#
# Every option below may also come from the command line or from
# TREESYNC_DATABASE, TREESYNC_DRY_RUN, TREESYNC_HASHING,
# TREESYNC_IGNORE_DIR_ATTRIBUTES, TREESYNC_SILENT and TREESYNC_DEBUG.
#
# sync:
#   database: sqlite:///${HOME}/.treesync/history.db
#   dry_run: false
#   hashing: false
#   ignore_directory_attributes: false
#   silent: false
#   ignore:
#     - /data/laptop/.cache
#
# logging:
#   level: INFO
#   file: /var/log/treesync.log
#   rolling: true
#   format: text
"""


def resolve_config_path() -> Path:
    """Path of the config file in effect, or where a new one would go."""
    existing = discover_config_files()
    if existing:
        return existing[0]
    return Path.cwd() / CONFIG_DIR_NAME / CONFIG_FILE_NAMES[0]


def ensure_config(target: Path | None = None) -> Path:
    """Make sure a config file exists and return its path.

    An existing file is never touched.  Otherwise a fully commented
    starter file is written to *target* (default: ``resolve_config_path()``).
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Using existing config file %s", existing[0])
        return existing[0]

    path = target or resolve_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config file %s", path)
    return path


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


def _merge_sections(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Merge *override* into *base*; mapping sections merge per key."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            base[key] = {**current, **value}
        else:
            base[key] = value


def load_hierarchical_config() -> dict[str, Any]:
    """Read every discovered config file into one dict.

    The least specific file is read first; each following file
    overrides it key by key inside each section.  Environment
    references are expanded last.  No files gives ``{}``.

    Raises:
        yaml.YAMLError, OSError, ValueError: A file could not be read.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Reading config file %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except (yaml.YAMLError, OSError, ValueError):
            logger.error("Cannot read config file %s", path)
            raise

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring config file %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
            continue
        _merge_sections(merged, data)

    if not merged:
        logger.debug("No configuration files, using defaults")
    return _interpolate_recursive(merged)
