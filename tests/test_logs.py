from __future__ import annotations

import logging
import re
import tempfile
import unittest
from datetime import date
from pathlib import Path

from iislogs_to_excel.logs import (
    DailyLogHandler,
    clean_old_logs,
    configure_logging,
    log_file_path,
    log_run_marker,
    shutdown_logging,
)
from iislogs_to_excel.taxonomy import LOG_INIT_FAILURE


class DailyLogTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.log_dir = Path(self._tmp.name)

    def configure(self, enabled: bool = True, log_dir: Path | None = None):
        logger, issues = configure_logging(enabled, log_dir or self.log_dir)
        self.addCleanup(shutdown_logging, logger, False)
        return logger, issues

    def test_log_file_is_named_by_day(self):
        self.assertEqual(log_file_path(self.log_dir, date(2025, 7, 4)).name, "IISLogsToExcel20250704.log")

    def test_records_use_timestamp_and_level(self):
        logger, issues = self.configure()
        self.assertEqual(issues, [])
        logging.getLogger("iislogs_to_excel.converter").info("Processing file a.log (1 KB).")
        logging.getLogger("iislogs_to_excel.converter").warning("Row skipped.")
        shutdown_logging(logger)
        lines = log_file_path(self.log_dir).read_text(encoding="utf-8").splitlines()
        self.assertRegex(lines[0], r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[INFO\] Processing file a\.log \(1 KB\)\.$")
        self.assertTrue(lines[1].endswith("[WARNING] Row skipped."))
        self.assertEqual(lines[-1], "=" * 61)

    def test_run_marker_is_written_bare(self):
        logger, _ = self.configure()
        log_run_marker(logger, 3)
        shutdown_logging(logger, write_header=False)
        text = log_file_path(self.log_dir).read_text(encoding="utf-8")
        self.assertEqual(text.splitlines(), ["#########~3~#########"])

    def test_disabled_logging_attaches_no_file_handler(self):
        logger, issues = self.configure(enabled=False)
        self.assertEqual(issues, [])
        self.assertFalse(any(isinstance(handler, DailyLogHandler) for handler in logger.handlers))
        self.assertFalse(log_file_path(self.log_dir).exists())

    def test_unusable_log_directory_disables_logging_with_warning(self):
        blocker = self.log_dir / "blocker"
        blocker.write_text("", encoding="utf-8")
        logger, issues = self.configure(log_dir=blocker / "logs")
        self.assertEqual([issue.kind for issue in issues], [LOG_INIT_FAILURE])
        self.assertFalse(any(isinstance(handler, DailyLogHandler) for handler in logger.handlers))

    def test_reconfiguring_replaces_the_handler(self):
        logger, _ = self.configure()
        self.configure()
        self.assertEqual(sum(isinstance(handler, DailyLogHandler) for handler in logger.handlers), 1)


class CleanOldLogsTests(unittest.TestCase):
    def test_only_todays_log_survives(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            folder = Path(tmpdir)
            for name in ["IISLogsToExcel20240101.log", "IISLogsToExcel20240102.log", "notes.log"]:
                (folder / name).write_text("x", encoding="utf-8")
            removed = clean_old_logs(folder, today=date(2024, 1, 2))
            self.assertEqual(removed, 1)
            self.assertEqual(sorted(p.name for p in folder.iterdir()), ["IISLogsToExcel20240102.log", "notes.log"])

    def test_missing_directory_removes_nothing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(clean_old_logs(Path(tmpdir) / "missing"), 0)


if __name__ == "__main__":
    unittest.main()
