"""Tests for FilesystemActuator: copy, delete, no-op and attribute sync."""

from __future__ import annotations

import os
import shutil
from unittest.mock import patch

import pytest

from treesync.exceptions import ActuationError
from treesync.sync.actuator import FilesystemActuator
from treesync.sync.models import Decision, Side, SyncCounters, SyncOptions
from treesync.sync.resolver import PlannedAction

OLD_NS = 1_600_000_000 * 10**9
NEW_NS = 1_700_000_000 * 10**9


@pytest.fixture
def counters():
    return SyncCounters()


def _actuator(counters, sink, **opts):
    return FilesystemActuator(SyncOptions(**opts), counters, sink)


class TestCopy:
    def test_copy_file_preserves_mtime(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, dest = roots
        entry = make_entry(write_file(source / "a.txt", "abc", OLD_NS))

        _actuator(counters, sink).apply(
            PlannedAction(Decision.COPY, entry, dest, Side.DESTINATION)
        )

        copied = dest / "a.txt"
        assert copied.read_text() == "abc"
        assert copied.stat().st_mtime_ns == OLD_NS
        assert counters.files_copied_to_destination == 1
        assert f"Copying file {entry.path}" in sink

    def test_copy_directory_recursively(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, dest = roots
        write_file(source / "d" / "sub" / "x.txt", "x")
        entry = make_entry(source / "d")

        _actuator(counters, sink).apply(
            PlannedAction(Decision.COPY, entry, dest, Side.DESTINATION)
        )

        assert (dest / "d" / "sub" / "x.txt").read_text() == "x"
        assert counters.dirs_copied_to_destination == 1
        assert counters.files_copied == 0
        assert f"Copying directory {entry.path}" in sink

    def test_copy_destination_counts_source_side(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, dest = roots
        entry = make_entry(write_file(dest / "b.txt", "new", NEW_NS))
        write_file(source / "b.txt", "old", OLD_NS)

        _actuator(counters, sink).apply(
            PlannedAction(
                Decision.COPY_DESTINATION, entry, source, Side.SOURCE
            )
        )

        assert (source / "b.txt").read_text() == "new"
        assert counters.files_copied_to_source == 1

    def test_file_replaces_directory(
        self, roots, write_file, make_entry, counters, sink
    ):
        """Copying a file onto a same-named directory replaces it."""
        source, dest = roots
        entry = make_entry(write_file(source / "x", "file", NEW_NS))
        write_file(dest / "x" / "inner.txt", "dir content")

        _actuator(counters, sink).apply(
            PlannedAction(Decision.COPY, entry, dest, Side.DESTINATION)
        )

        assert (dest / "x").is_file()
        assert (dest / "x").read_text() == "file"

    def test_directory_replaces_file(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, dest = roots
        write_file(source / "x" / "inner.txt", "inner")
        entry = make_entry(source / "x")
        write_file(dest / "x", "file")

        _actuator(counters, sink).apply(
            PlannedAction(Decision.COPY, entry, dest, Side.DESTINATION)
        )

        assert (dest / "x" / "inner.txt").read_text() == "inner"

    def test_copy_directory_skips_ignored_paths(
        self, roots, write_file, make_entry, counters, sink
    ):
        """Ignored paths below a copied directory stay behind."""
        source, dest = roots
        write_file(source / "d" / "secret", "s")
        write_file(source / "d" / "sub" / "cache.db", "c")
        write_file(source / "d" / "ok", "o")
        entry = make_entry(source / "d")
        ignore = frozenset({source / "d" / "secret", dest / "d" / "sub"})

        _actuator(counters, sink, ignore_paths=ignore).apply(
            PlannedAction(Decision.COPY, entry, dest, Side.DESTINATION)
        )

        assert (dest / "d" / "ok").read_text() == "o"
        assert not (dest / "d" / "secret").exists()
        assert not (dest / "d" / "sub").exists()
        assert f"Ignoring {source / 'd' / 'secret'}" in sink


class TestDelete:
    def test_delete_file(self, roots, write_file, make_entry, counters, sink):
        _, dest = roots
        entry = make_entry(write_file(dest / "gone.txt", "x"))

        _actuator(counters, sink).apply(
            PlannedAction(Decision.DELETE, entry, None, Side.DESTINATION)
        )

        assert not (dest / "gone.txt").exists()
        assert counters.files_deleted_from_destination == 1
        assert f"Deleting file {entry.path}" in sink

    def test_delete_directory_tree(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, _ = roots
        write_file(source / "d" / "a" / "b.txt", "x")
        entry = make_entry(source / "d")

        _actuator(counters, sink).apply(
            PlannedAction(Decision.DELETE, entry, None, Side.SOURCE)
        )

        assert not (source / "d").exists()
        assert counters.dirs_deleted_from_source == 1
        assert f"Deleting directory {entry.path}" in sink

    def test_delete_symlink_to_directory_keeps_target(
        self, roots, tmp_path, write_file, make_entry, counters, sink
    ):
        source, _ = roots
        target = tmp_path / "elsewhere"
        write_file(target / "keep.txt", "keep")
        link = source / "link"
        link.symlink_to(target, target_is_directory=True)
        entry = make_entry(link)

        _actuator(counters, sink).apply(
            PlannedAction(Decision.DELETE, entry, None, Side.SOURCE)
        )

        assert not link.exists()
        assert (target / "keep.txt").exists()


class TestNoop:
    def test_noop_reports_line(self, roots, write_file, make_entry, counters, sink):
        source, _ = roots
        entry = make_entry(write_file(source / "a.txt"))

        _actuator(counters, sink).apply(
            PlannedAction(Decision.NOOP, entry, None, Side.DESTINATION)
        )

        assert sink.lines == [f"No operation for {entry.path}"]
        assert counters.as_dict() == SyncCounters().as_dict()

    def test_silent_suppresses_noop_line(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, _ = roots
        entry = make_entry(write_file(source / "a.txt"))

        _actuator(counters, sink, silent=True).apply(
            PlannedAction(Decision.NOOP, entry, None, Side.DESTINATION)
        )

        assert sink.lines == []


class TestDryRun:
    def test_dry_run_reports_and_counts_without_writing(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, dest = roots
        new = make_entry(write_file(source / "new.txt", "n"))
        old = make_entry(write_file(dest / "old.txt", "o"))
        actuator = _actuator(counters, sink, dry_run=True)

        actuator.apply(
            PlannedAction(Decision.COPY, new, dest, Side.DESTINATION)
        )
        actuator.apply(
            PlannedAction(Decision.DELETE, old, None, Side.DESTINATION)
        )

        assert not (dest / "new.txt").exists()
        assert (dest / "old.txt").exists()
        assert counters.files_copied_to_destination == 1
        assert counters.files_deleted_from_destination == 1
        assert sink.matching("Copying file") == [f"Copying file {new.path}"]
        assert sink.matching("Deleting file") == [f"Deleting file {old.path}"]

    def test_dry_run_attribute_sync_does_not_touch(
        self, roots, make_entry, set_mtime, counters, sink
    ):
        source, dest = roots
        (source / "d").mkdir()
        (dest / "d").mkdir()
        set_mtime(source / "d", NEW_NS)
        set_mtime(dest / "d", OLD_NS)

        _actuator(counters, sink, dry_run=True).sync_directory_attributes(
            make_entry(source / "d"), make_entry(dest / "d")
        )

        assert (dest / "d").stat().st_mtime_ns == OLD_NS
        assert f"Setting attributes for {dest / 'd'}" in sink


class TestDirectoryAttributes:
    def test_sync_copies_mtime(self, roots, make_entry, set_mtime, counters, sink):
        source, dest = roots
        (source / "d").mkdir()
        (dest / "d").mkdir()
        set_mtime(source / "d", NEW_NS)
        set_mtime(dest / "d", OLD_NS)

        _actuator(counters, sink).sync_directory_attributes(
            make_entry(source / "d"), make_entry(dest / "d")
        )

        assert (dest / "d").stat().st_mtime_ns == NEW_NS

    def test_vanished_directory_raises(
        self, roots, make_entry, counters, sink
    ):
        source, dest = roots
        (source / "d").mkdir()
        (dest / "d").mkdir()
        src_entry = make_entry(source / "d")
        dest_entry = make_entry(dest / "d")
        os.rmdir(dest / "d")

        with pytest.raises(ActuationError, match="Cannot set attributes"):
            _actuator(counters, sink).sync_directory_attributes(
                src_entry, dest_entry
            )


class TestErrors:
    def test_copy_failure_raises_actuation_error(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, dest = roots
        entry = make_entry(write_file(source / "a.txt", "abc"))

        with patch.object(
            shutil, "copy2", side_effect=PermissionError("denied")
        ):
            with pytest.raises(ActuationError, match="denied"):
                _actuator(counters, sink).apply(
                    PlannedAction(Decision.COPY, entry, dest, Side.DESTINATION)
                )

        assert counters.files_copied == 0

    def test_delete_missing_file_raises(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, _ = roots
        entry = make_entry(write_file(source / "a.txt"))
        (source / "a.txt").unlink()

        with pytest.raises(ActuationError) as excinfo:
            _actuator(counters, sink).apply(
                PlannedAction(Decision.DELETE, entry, None, Side.SOURCE)
            )

        assert excinfo.value.exit_code == 9

    def test_copy_without_target_directory_rejected(
        self, roots, write_file, make_entry, counters, sink
    ):
        source, _ = roots
        entry = make_entry(write_file(source / "a.txt"))

        with pytest.raises(ValueError, match="no target directory"):
            _actuator(counters, sink).apply(
                PlannedAction(Decision.COPY, entry, None, Side.DESTINATION)
            )

        assert counters.files_copied == 0
