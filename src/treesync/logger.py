import json
import logging
import logging.handlers
import os
import sys

from treesync.exceptions import LoggingSetupError

TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rolling log files rotate at 10 MB.
ROLLING_MAX_BYTES = 10 * 1024 * 1024
ROLLING_BACKUP_COUNT = 5


class JsonFormatter(logging.Formatter):
    """Formats each record as one JSON line for log shippers.

    Keys: ts, level, logger, msg, plus "exc" carrying the traceback
    when the record has one.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(log_format: str, pattern: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    return logging.Formatter(pattern, datefmt=DATE_FORMAT)


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    rolling: bool = False,
    log_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure process-wide logging for a sync run.

    Args:
        debug: If True, overrides the level to DEBUG.
        log_file: Also write to this file.
        rolling: Rotate ``log_file`` at 10 MB instead of growing it.
        log_format: "text" (default) or "json" for structured output.
        level: Level name from the config file; LOG_LEVEL env var wins.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: INFO.

    Raises:
        LoggingSetupError: If ``log_file`` cannot be opened.
    """
    env_level = os.getenv("LOG_LEVEL", level or "INFO").upper()

    # --debug beats LOG_LEVEL and the config file
    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    handlers: list[logging.Handler] = []
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_formatter(log_format, TEXT_FORMAT))
    handlers.append(stderr_handler)

    if log_file:
        try:
            if rolling:
                file_handler: logging.Handler = (
                    logging.handlers.RotatingFileHandler(
                        log_file,
                        mode="a",
                        maxBytes=ROLLING_MAX_BYTES,
                        backupCount=ROLLING_BACKUP_COUNT,
                    )
                )
            else:
                file_handler = logging.FileHandler(log_file, mode="a")
        except OSError as exc:
            raise LoggingSetupError(
                f"Cannot open log file {log_file}: {exc}"
            ) from exc
        file_handler.setFormatter(_formatter(log_format, FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
    )

    # Silence SQLAlchemy unless DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
