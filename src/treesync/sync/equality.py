"""Equality oracle: decide whether two files hold the same content.

Metadata (modification time and size) is compared first.  When hashing
is enabled an MD5 digest comparison is an additional gate on top of
matching metadata, never a replacement for it.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from treesync.sync.models import DirectoryEntry

_CHUNK_SIZE = 65536


def md5_digest(path: Path) -> str:
    """Return the hex MD5 digest of the file at *path*."""
    h = hashlib.md5()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def metadata_equal(src: DirectoryEntry, dest: DirectoryEntry) -> bool:
    return src.mtime_ns == dest.mtime_ns and src.size == dest.size


def files_equal(
    src: DirectoryEntry, dest: DirectoryEntry, hashing: bool = False
) -> bool:
    """Return ``True`` if *src* and *dest* are considered equal.

    Raises:
        OSError: If hashing is enabled and either file cannot be read.
    """
    if not metadata_equal(src, dest):
        return False
    if not hashing:
        return True
    return md5_digest(src.path) == md5_digest(dest.path)
