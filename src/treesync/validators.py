"""
Input validation functions for treesync.

Provides validation for the two synchronization roots and the ignore
list so problems are caught before any traversal starts.
"""

from pathlib import Path

from treesync.exceptions import (
    InvalidDestinationError,
    InvalidSourceError,
    SameRootError,
)

# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Source path")
        reason: Description of validation failure (e.g., "is not a directory")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_directory(path: str | Path, field_name: str) -> tuple[bool, str]:
    """
    Validate that a path names an existing directory.

    Args:
        path: The path to validate
        field_name: Human-readable name used in the error message

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not str(path).strip():
        return (False, format_validation_error(field_name, "cannot be empty"))

    if not Path(path).expanduser().is_dir():
        return (
            False,
            format_validation_error(field_name, f"'{path}' is not a directory"),
        )

    return (True, "")


def canonical_roots(source: str | Path, destination: str | Path) -> tuple[Path, Path]:
    """
    Validate and canonicalize the two synchronization roots.

    Args:
        source: Source root path
        destination: Destination root path

    Returns:
        Tuple of (canonical_source, canonical_destination).

    Raises:
        InvalidSourceError: If the source is not a directory.
        InvalidDestinationError: If the destination is not a directory.
        SameRootError: If both resolve to the same directory.
    """
    ok, reason = validate_directory(source, "Source path")
    if not ok:
        raise InvalidSourceError(reason)

    ok, reason = validate_directory(destination, "Destination path")
    if not ok:
        raise InvalidDestinationError(reason)

    canonical_source = Path(source).expanduser().resolve()
    canonical_dest = Path(destination).expanduser().resolve()
    if canonical_source == canonical_dest:
        raise SameRootError(
            f"Source and destination point to the same directory: {canonical_source}"
        )

    return canonical_source, canonical_dest


def normalize_ignore_path(path: str | Path) -> Path:
    """
    Make an ignore-list entry comparable with walked entry paths.

    The parent directory is resolved, the final component is kept as
    given so an ignored symlink matches the link itself.
    """
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = Path.cwd() / p
    return p.parent.resolve() / p.name
