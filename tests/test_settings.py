from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from iislogs_to_excel.settings import Settings, load_settings, reset_settings, save_settings
from iislogs_to_excel.taxonomy import SETTINGS_IO_FAILURE


class SettingsTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "IISLogsToExcel.ini"

    def test_missing_file_gives_defaults(self):
        settings, issues = load_settings(self.path)
        self.assertEqual(settings, Settings())
        self.assertEqual(issues, [])

    def test_saved_settings_use_the_ini_keys(self):
        settings = Settings(single_workbook=True, create_pivot=True, folder_path="D:\\Logs\\W3SVC1")
        saved, issues = save_settings(settings, self.path)
        self.assertTrue(saved)
        self.assertEqual(issues, [])
        text = self.path.read_text(encoding="utf-8")
        self.assertIn("[Settings]", text)
        self.assertIn("SingleWorkbook = True", text)
        self.assertIn("EnableLogging = False", text)
        self.assertIn("FolderPath = D:\\Logs\\W3SVC1", text)
        self.assertEqual(load_settings(self.path)[0], settings)

    def test_bad_boolean_keeps_default_and_warns(self):
        self.path.write_text("[Settings]\nCreatePivot = maybe\nDarkMode = True\n", encoding="utf-8")
        settings, issues = load_settings(self.path)
        self.assertFalse(settings.create_pivot)
        self.assertTrue(settings.dark_mode)
        self.assertEqual([issue.kind for issue in issues], [SETTINGS_IO_FAILURE])

    def test_unparseable_file_gives_defaults_and_warns(self):
        self.path.write_text("this is not an ini file\n", encoding="utf-8")
        settings, issues = load_settings(self.path)
        self.assertEqual(settings, Settings())
        self.assertEqual(issues[0].kind, SETTINGS_IO_FAILURE)

    def test_unwritable_location_returns_false(self):
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("", encoding="utf-8")
        saved, issues = save_settings(Settings(), blocker / "IISLogsToExcel.ini")
        self.assertFalse(saved)
        self.assertEqual(issues[0].kind, SETTINGS_IO_FAILURE)

    def test_reset_writes_defaults(self):
        save_settings(Settings(dark_mode=True, folder_path="C:\\inetpub"), self.path)
        settings, issues = reset_settings(self.path)
        self.assertEqual(settings, Settings())
        self.assertEqual(issues, [])
        self.assertEqual(load_settings(self.path)[0], Settings())


if __name__ == "__main__":
    unittest.main()
