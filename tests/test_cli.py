from __future__ import annotations

import importlib.util
import json
import subprocess
import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path

from openpyxl import load_workbook

ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "iislogs_to_excel.cli"]
GENERATOR = ROOT / "sample-data" / "generate_sample_logs.py"


def load_module(module_path: Path, module_name: str):
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


SAMPLES = load_module(GENERATOR, "iislogs_sample_generator_cli")


def run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
    )


class IISLogsCliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name)
        self.settings = self.tmp / "IISLogsToExcel.ini"

    def sample_folder(self) -> Path:
        folder = self.tmp / "logs"
        SAMPLES.build_sample_folder(folder)
        return folder

    def clean_folder(self) -> Path:
        folder = self.tmp / "clean"
        folder.mkdir()
        (folder / "u_ex240105.log").write_text(
            "#Fields: date time cs-uri-stem sc-status time-taken\n"
            "2024-01-05 09:00:00 / 200 4\n"
            "2024-01-05 09:00:01 /about 200 9\n",
            encoding="utf-8",
        )
        return folder

    def test_convert_messy_folder_returns_partial_exit_6(self):
        folder = self.sample_folder()
        proc = run_cli("convert", str(folder), "--pivot", "--no-log", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 6, proc.stderr)
        self.assertIn("Status: partial", proc.stderr)
        self.assertIn("Processing complete.", proc.stderr)
        self.assertTrue((folder / "240101.xlsx").exists())

    def test_convert_clean_folder_returns_exit_0(self):
        folder = self.clean_folder()
        proc = run_cli("convert", str(folder), "--single-workbook", "--no-log", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        workbook = load_workbook(folder / "clean.xlsx")
        self.assertEqual(workbook.sheetnames, ["240105"])

    def test_convert_json_stdout_contains_only_the_summary(self):
        folder = self.clean_folder()
        proc = run_cli("convert", str(folder), "--json", "--no-log", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        summary = json.loads(proc.stdout)
        self.assertEqual(summary["contract"]["name"], "iislogs_to_excel.batch_summary")
        self.assertEqual(summary["run_summary"]["metrics"]["rows_written"], 2)

    def test_convert_writes_json_summary_file(self):
        folder = self.clean_folder()
        summary_path = self.tmp / "out" / "summary.json"
        proc = run_cli(
            "convert", str(folder), "--json-summary", str(summary_path), "--no-log", "--settings", str(self.settings)
        )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        summary = json.loads(summary_path.read_text(encoding="utf-8"))
        self.assertEqual(summary["run_summary"]["status"], "ok")

    def test_convert_remembers_the_folder(self):
        folder = self.clean_folder()
        run_cli("convert", str(folder), "--no-log", "--settings", str(self.settings))
        self.assertIn(f"FolderPath = {folder.resolve()}", self.settings.read_text(encoding="utf-8"))
        proc = run_cli("convert", "--no-log", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 0, proc.stderr)

    def test_convert_with_log_dir_writes_daily_log(self):
        folder = self.clean_folder()
        log_dir = self.tmp / "applogs"
        proc = run_cli("convert", str(folder), "--log-dir", str(log_dir), "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        log_text = (log_dir / f"IISLogsToExcel{date.today():%Y%m%d}.log").read_text(encoding="utf-8")
        self.assertIn("[INFO] Processing started", log_text)
        self.assertIn("#########~1~#########", log_text)

    def test_missing_folder_returns_exit_2(self):
        proc = run_cli("convert", str(self.tmp / "nope"), "--no-log", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 2)
        self.assertIn("Folder not found", proc.stderr)

    def test_folder_without_logs_returns_exit_2(self):
        proc = run_cli("convert", str(self.tmp), "--no-log", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 2)
        self.assertIn("No log files found", proc.stderr)

    def test_list_prints_sizes(self):
        folder = self.sample_folder()
        proc = run_cli("list", str(folder))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("u_ex240101.log", proc.stdout)
        self.assertIn("5 file(s)", proc.stdout)

    def test_settings_show_and_reset(self):
        proc = run_cli("settings", "reset", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertTrue(self.settings.exists())
        proc = run_cli("settings", "show", "--settings", str(self.settings))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("SingleWorkbook = False", proc.stdout)
        self.assertIn("FolderPath = ", proc.stdout)

    def test_clean_logs(self):
        log_dir = self.tmp / "applogs"
        log_dir.mkdir()
        (log_dir / "IISLogsToExcel20000101.log").write_text("old", encoding="utf-8")
        proc = run_cli("clean-logs", "--log-dir", str(log_dir))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("Removed 1 old log file(s)", proc.stdout)
        self.assertEqual(list(log_dir.iterdir()), [])

    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0)
        self.assertEqual(proc.stdout.strip(), "1.2.0")

    def test_unknown_command_returns_exit_1(self):
        proc = run_cli("explode")
        self.assertEqual(proc.returncode, 1)


if __name__ == "__main__":
    unittest.main()
