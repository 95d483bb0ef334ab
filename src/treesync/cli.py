"""Command-line entry point for treesync.

Parses arguments, loads configuration, configures logging, runs one
synchronization and maps the outcome to a process exit code.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import load_config
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import build_config
from .exceptions import CheckFileMissingError, TreeSyncError
from .logger import setup_logging
from .sync import SyncEngine, format_sync_report, report_to_json

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treesync",
        description="Synchronize two directory trees in both directions, "
        "propagating additions, updates and deletions since the last run.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview what would change
  treesync ~/Documents /mnt/backup/Documents --dry-run

  # Synchronize, comparing equal-looking files by MD5 as well
  treesync ~/Documents /mnt/backup/Documents --hashing

  # Keep the history database somewhere specific and skip a cache dir
  treesync ~/src /mnt/nas/src -f ~/.treesync/history.db -g ~/src/.cache

  # Only run when the backup disk is mounted
  treesync ~/photos /mnt/backup/photos --check-file-exists /mnt/backup/.mounted

Exit codes:
  0 success, 1 unexpected error, 2 usage or config error,
  3 invalid source, 4 invalid destination, 5 same directory,
  6 database connection, 7 database query, 8 traversal I/O,
  9 copy/delete I/O, 10 check file missing, 11 log file
        """,
    )

    parser.add_argument("source", help="the source path")
    parser.add_argument("destination", help="the destination path")
    parser.add_argument(
        "-f",
        "--dbfile",
        help="history database: SQLite file path or SQLAlchemy URL "
        "(default: treesync.db)",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="perform a trial run with no changes made",
    )
    parser.add_argument(
        "-H",
        "--hashing",
        action="store_true",
        help="generate MD5 file hashes for exact comparison",
    )
    parser.add_argument(
        "-i",
        "--ignore-directory-attributes",
        action="store_true",
        help="do not copy attributes for directories",
    )
    parser.add_argument(
        "-s",
        "--silent",
        action="store_true",
        help='do not print "Entering directory" and "No operation" messages',
    )
    parser.add_argument(
        "-g",
        "--ignore",
        action="append",
        default=[],
        metavar="PATH",
        help="absolute path to leave out of the synchronization "
        "(may be given more than once)",
    )
    parser.add_argument(
        "-l", "--logfile", help="the path for a logfile to write"
    )
    parser.add_argument(
        "-o",
        "--rolling-logfile",
        action="store_true",
        help="rotate the logfile at a maximum size of 10 MB",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="log line format (default: text)",
    )
    parser.add_argument(
        "--report",
        choices=["text", "json"],
        help="print a report of the finished run to stdout",
    )
    parser.add_argument(
        "--check-file-exists",
        metavar="PATH",
        help="perform synchronization only if the given file exists",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="write a starter .treesync/config.yml if none exists",
    )
    parser.add_argument(
        "--debug", action="store_true", help="print debug messages"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"treesync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one synchronization and return the process exit code."""
    args = build_parser().parse_args(argv)

    load_dotenv()

    if args.init_config:
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)

    try:
        unified = build_config(load_hierarchical_config())
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        setup_logging(
            debug=args.debug,
            log_file=args.logfile or unified.logging.file,
            rolling=args.rolling_logfile or unified.logging.rolling,
            log_format=args.log_format or unified.logging.format,
            level=unified.logging.level,
        )
    except TreeSyncError as exc:
        print(str(exc), file=sys.stderr)
        return exc.exit_code

    logger.info("Starting treesync version %s", __version__)

    try:
        config = load_config(
            database=args.dbfile,
            dry_run=args.dry_run,
            hashing=args.hashing,
            ignore_directory_attributes=args.ignore_directory_attributes,
            silent=args.silent,
            debug=args.debug,
            ignore=args.ignore,
            yaml_fallbacks=unified.sync.model_dump(),
        )
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    logger.info(
        "Log level set to %s",
        logging.getLevelName(logging.getLogger().getEffectiveLevel()),
    )

    try:
        if args.check_file_exists and not Path(args.check_file_exists).exists():
            raise CheckFileMissingError(
                f"The file {args.check_file_exists} does not exist. "
                "Stopping synchronization."
            )

        engine = SyncEngine(
            args.source,
            args.destination,
            options=config.to_options(),
            database_url=config.database_url,
        )
        report = engine.run()
    except TreeSyncError as exc:
        logger.critical("%s", exc)
        return exc.exit_code
    except Exception:
        logger.exception("Unexpected error during synchronization")
        return EXIT_UNEXPECTED

    if args.report == "json":
        print(json.dumps(report_to_json(report), indent=2))
    elif args.report == "text":
        print(format_sync_report(report))

    return EXIT_OK


def run() -> None:
    """Entry point that handles interrupts and exits with the run's code."""
    try:
        code = main()
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        code = 130
    finally:
        logging.shutdown()
    sys.exit(code)


if __name__ == "__main__":
    run()
