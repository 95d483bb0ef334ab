"""Tests for the command-line entry point and its exit codes.

setup_logging is patched out so tests do not install real handlers on
the root logger.
"""

import json
import logging
from unittest.mock import patch

import pytest

from treesync import __version__, cli
from treesync.exceptions import LoggingSetupError, StoreError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Empty CWD and HOME, no TREESYNC_* variables, logging patched."""
    for key in (
        "TREESYNC_CONFIG",
        "TREESYNC_DATABASE",
        "TREESYNC_DRY_RUN",
        "TREESYNC_HASHING",
        "TREESYNC_IGNORE_DIR_ATTRIBUTES",
        "TREESYNC_SILENT",
        "TREESYNC_DEBUG",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(work)
    root_level = logging.getLogger().level
    with patch("treesync.cli.setup_logging") as mock_setup:
        yield mock_setup
    logging.getLogger().setLevel(root_level)


@pytest.fixture
def db_args(tmp_path):
    return ["-f", str(tmp_path / "history.db")]


class TestParser:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--version"])
        assert excinfo.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_missing_arguments_is_usage_error(self):
        with pytest.raises(SystemExit) as excinfo:
            cli.main([])
        assert excinfo.value.code == 2

    def test_repeatable_ignore(self):
        args = cli.build_parser().parse_args(
            ["a", "b", "-g", "/x", "--ignore", "/y"]
        )
        assert args.ignore == ["/x", "/y"]


class TestMain:
    def test_successful_sync(self, roots, write_file, db_args):
        source, dest = roots
        write_file(source / "a.txt", "a")

        code = cli.main([str(source), str(dest), *db_args])

        assert code == 0
        assert (dest / "a.txt").read_text() == "a"

    def test_dry_run_flag(self, roots, write_file, db_args):
        source, dest = roots
        write_file(source / "a.txt", "a")

        assert cli.main([str(source), str(dest), "-d", *db_args]) == 0
        assert not (dest / "a.txt").exists()

    def test_logging_options_passed_through(
        self, isolated, roots, db_args, tmp_path
    ):
        source, dest = roots
        log_file = str(tmp_path / "sync.log")

        cli.main(
            [
                str(source),
                str(dest),
                "-l",
                log_file,
                "-o",
                "--log-format",
                "json",
                "--debug",
                *db_args,
            ]
        )

        isolated.assert_called_once_with(
            debug=True,
            log_file=log_file,
            rolling=True,
            log_format="json",
            level="INFO",
        )

    def test_text_report_printed(self, roots, write_file, db_args, capsys):
        source, dest = roots
        write_file(source / "a.txt", "a")

        code = cli.main([str(source), str(dest), "--report", "text", *db_args])

        out = capsys.readouterr().out
        assert code == 0
        assert out.startswith(f"Sync report for {source} <-> {dest}")
        assert "  Files copied to destination: 1" in out

    def test_json_report_printed(self, roots, write_file, db_args, capsys):
        source, dest = roots
        write_file(dest / "b.txt", "b")

        code = cli.main(
            [str(source), str(dest), "-d", "--report", "json", *db_args]
        )

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["dry_run"] is True
        assert data["totals"] == {"copied": 1, "deleted": 0}
        assert data["counts"]["files_copied_to_source"] == 1

    def test_no_report_by_default(self, roots, db_args, capsys):
        source, dest = roots
        assert cli.main([str(source), str(dest), *db_args]) == 0
        assert capsys.readouterr().out == ""

    def test_invalid_source_exit_code(self, tmp_path, roots, db_args):
        _, dest = roots
        code = cli.main([str(tmp_path / "nope"), str(dest), *db_args])
        assert code == 3

    def test_invalid_destination_exit_code(self, tmp_path, roots, db_args):
        source, _ = roots
        code = cli.main([str(source), str(tmp_path / "nope"), *db_args])
        assert code == 4

    def test_same_root_exit_code(self, roots, db_args):
        source, _ = roots
        assert cli.main([str(source), str(source), *db_args]) == 5

    def test_check_file_missing(self, tmp_path, roots, write_file, db_args):
        source, dest = roots
        write_file(source / "a.txt")

        code = cli.main(
            [
                str(source),
                str(dest),
                "--check-file-exists",
                str(tmp_path / "mounted"),
                *db_args,
            ]
        )

        assert code == 10
        assert not (dest / "a.txt").exists()

    def test_check_file_present(self, tmp_path, roots, write_file, db_args):
        source, dest = roots
        marker = write_file(tmp_path / "mounted")
        code = cli.main(
            [str(source), str(dest), "--check-file-exists", str(marker), *db_args]
        )
        assert code == 0

    def test_log_file_error_exit_code(self, isolated, roots, db_args):
        source, dest = roots
        isolated.side_effect = LoggingSetupError("cannot open")
        assert cli.main([str(source), str(dest), *db_args]) == 11

    def test_store_error_exit_code(self, roots, db_args):
        source, dest = roots
        with patch(
            "treesync.cli.SyncEngine.run", side_effect=StoreError("boom")
        ):
            assert cli.main([str(source), str(dest), *db_args]) == 7

    def test_unexpected_error_exit_code(self, roots, db_args):
        source, dest = roots
        with patch(
            "treesync.cli.SyncEngine.run", side_effect=RuntimeError("bug")
        ):
            assert cli.main([str(source), str(dest), *db_args]) == 1

    def test_relative_ignore_is_config_error(self, roots, db_args):
        source, dest = roots
        code = cli.main([str(source), str(dest), "-g", "rel/path", *db_args])
        assert code == 2


class TestConfigFiles:
    def test_yaml_options_applied(self, tmp_path, roots, write_file):
        source, dest = roots
        write_file(source / "a.txt")
        db = tmp_path / "yaml.db"
        write_file(
            tmp_path / "work" / ".treesync" / "config.yml",
            f"sync:\n  database: {db}\n  dry_run: true\n",
        )

        assert cli.main([str(source), str(dest)]) == 0
        assert db.exists()
        assert not (dest / "a.txt").exists()

    def test_invalid_yaml_is_config_error(self, tmp_path, roots, write_file):
        source, dest = roots
        write_file(
            tmp_path / "work" / ".treesync" / "config.yml",
            "logging:\n  format: xml\n",
        )
        assert cli.main([str(source), str(dest)]) == 2

    def test_init_config_writes_starter(self, tmp_path, roots, db_args):
        source, dest = roots
        assert cli.main([str(source), str(dest), "--init-config", *db_args]) == 0
        assert (tmp_path / "work" / ".treesync" / "config.yml").exists()


class TestRun:
    @pytest.fixture(autouse=True)
    def no_shutdown(self):
        with patch("treesync.cli.logging.shutdown"):
            yield

    def test_exits_with_main_code(self):
        with patch("treesync.cli.main", return_value=4):
            with pytest.raises(SystemExit) as excinfo:
                cli.run()
        assert excinfo.value.code == 4

    def test_keyboard_interrupt(self):
        with patch("treesync.cli.main", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as excinfo:
                cli.run()
        assert excinfo.value.code == 130
