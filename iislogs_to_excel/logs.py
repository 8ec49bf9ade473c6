"""
Daily application log.

Records go to ``IISLogsToExcel<yyyymmdd>.log`` through a file handler on the
package logger. Library modules only ever call ``logging.getLogger(__name__)``;
without ``configure_logging`` the package logger has a ``NullHandler`` and
stays silent.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from iislogs_to_excel.constants import LOG_EXTENSION, LOG_FILE_PREFIX, LOG_HEADER, RUN_MARKER
from iislogs_to_excel.taxonomy import LOG_INIT_FAILURE, Issue

PACKAGE_LOGGER = "iislogs_to_excel"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLineFormatter(logging.Formatter):
    """Standard line format; records logged with ``extra={"raw": True}`` are written bare."""

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, "raw", False):
            return record.getMessage()
        return super().format(record)


class DailyLogHandler(logging.FileHandler):
    pass


def default_log_dir() -> Path:
    return Path.cwd()


def log_file_path(log_dir: Path, today: date | None = None) -> Path:
    today = today or date.today()
    return Path(log_dir) / f"{LOG_FILE_PREFIX}{today:%Y%m%d}{LOG_EXTENSION}"


def _daily_handlers(logger: logging.Logger) -> list[DailyLogHandler]:
    return [handler for handler in logger.handlers if isinstance(handler, DailyLogHandler)]


def configure_logging(
    enabled: bool,
    log_dir: Path | None = None,
) -> tuple[logging.Logger, list[Issue]]:
    """
    Attach (or detach) the daily file handler on the package logger.

    When the log file cannot be opened, logging stays disabled and a
    ``log_init_failure`` issue is returned instead of raising.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    shutdown_logging(logger, write_header=False)
    if not enabled:
        return logger, []

    path = log_file_path(log_dir or default_log_dir())
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = DailyLogHandler(path, mode="a", encoding="utf-8")
    except OSError as exc:
        return logger, [Issue(LOG_INIT_FAILURE, f"Could not open log file {path}: {exc}")]

    handler.setFormatter(LogLineFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger, []


def log_run_marker(logger: logging.Logger, count: int) -> None:
    logger.info(RUN_MARKER.format(count=count), extra={"raw": True})


def shutdown_logging(logger: logging.Logger, write_header: bool = True) -> None:
    for handler in _daily_handlers(logger):
        if write_header:
            handler.handle(logging.makeLogRecord({"msg": LOG_HEADER, "raw": True, "levelno": logging.INFO}))
        logger.removeHandler(handler)
        handler.close()


def clean_old_logs(log_dir: Path | None = None, today: date | None = None) -> int:
    """Delete every daily log in ``log_dir`` except today's. Returns the number removed."""
    log_dir = Path(log_dir or default_log_dir())
    keep = log_file_path(log_dir, today).name
    removed = 0
    if not log_dir.is_dir():
        return removed
    for path in sorted(log_dir.glob(f"{LOG_FILE_PREFIX}*{LOG_EXTENSION}")):
        if path.name == keep or not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as exc:
            logging.getLogger(__name__).warning("Could not delete log file %s: %s", path, exc)
            continue
        removed += 1
    return removed
