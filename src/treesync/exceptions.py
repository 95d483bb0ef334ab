"""Exceptions for the treesync engine.

Every fatal outcome of a run is a ``TreeSyncError`` subclass carrying the
process exit code the command line maps it to.
"""


class TreeSyncError(Exception):
    """Base exception for all fatal synchronization failures."""

    exit_code = 1


# ---------------------------------------------------------------------------
# Configuration errors (raised before any traversal)
# ---------------------------------------------------------------------------


class ConfigurationError(TreeSyncError):
    """Raised when the roots or options are unusable."""


class InvalidSourceError(ConfigurationError):
    """Raised when the source root is not a directory."""

    exit_code = 3


class InvalidDestinationError(ConfigurationError):
    """Raised when the destination root is not a directory."""

    exit_code = 4


class SameRootError(ConfigurationError):
    """Raised when source and destination canonicalize to the same path."""

    exit_code = 5


class CheckFileMissingError(ConfigurationError):
    """Raised when the required check file does not exist."""

    exit_code = 10


class LoggingSetupError(ConfigurationError):
    """Raised when a log file cannot be opened."""

    exit_code = 11


# ---------------------------------------------------------------------------
# History store errors
# ---------------------------------------------------------------------------


class StoreError(TreeSyncError):
    """Raised when a history store query fails."""

    exit_code = 7


class StoreConnectionError(StoreError):
    """Raised when the history store cannot be opened or initialised."""

    exit_code = 6


# ---------------------------------------------------------------------------
# Filesystem errors
# ---------------------------------------------------------------------------


class SyncIOError(TreeSyncError):
    """Raised when filesystem I/O fails during a run."""


class TraversalError(SyncIOError):
    """Raised when listing, stat-ing or hashing an entry fails."""

    exit_code = 8


class ActuationError(SyncIOError):
    """Raised when copying or deleting an entry fails."""

    exit_code = 9
