from __future__ import annotations

import unittest

from iislogs_to_excel.errors import EmptyFileError, InvalidSchemaError, LogFormatError
from iislogs_to_excel.schema import classify_lines, resolve_schema, source_index
from iislogs_to_excel.taxonomy import EMPTY_FILE, INVALID_SCHEMA

SCENARIO_HEADER = "date time c-ip cs-method cs-uri-stem sc-status sc-substatus sc-bytes time-taken"


class ClassifyLinesTests(unittest.TestCase):
    def test_fields_directive_is_kept_and_comments_dropped(self):
        lines = [
            "#Software: Microsoft Internet Information Services 10.0",
            "#Fields: date time cs-uri-stem ",
            "",
            "2024-01-01 00:00:01 /",
            "#Date: 2024-01-01 00:00:00",
            "2024-01-01 00:00:02 /a",
        ]
        classified = classify_lines(lines, source="u_ex240101.log")
        self.assertEqual(classified.fields_line, "date time cs-uri-stem")
        self.assertEqual(classified.fields_line_number, 2)
        self.assertEqual([line.line_number for line in classified.data_lines], [4, 6])
        self.assertEqual(classified.data_lines[1].text, "2024-01-01 00:00:02 /a")

    def test_first_line_is_header_when_there_is_no_directive(self):
        classified = classify_lines(["date time cs-uri-stem", "2024-01-01 00:00:01 /"])
        self.assertEqual(classified.fields_line, "date time cs-uri-stem")
        self.assertEqual(len(classified.data_lines), 1)

    def test_comment_only_file_is_empty(self):
        with self.assertRaises(EmptyFileError) as ctx:
            classify_lines(["#Software: IIS", "#Version: 1.0", ""], source="u_ex1.log")
        self.assertIn("u_ex1.log is empty", str(ctx.exception))
        self.assertEqual(ctx.exception.kind, EMPTY_FILE)
        self.assertIsInstance(ctx.exception, LogFormatError)

    def test_repeated_directive_block_is_treated_as_comment(self):
        lines = ["#Fields: date time", "2024-01-01 00:00:01", "#Fields: date time", "2024-01-01 00:00:02"]
        classified = classify_lines(lines)
        self.assertEqual(len(classified.data_lines), 2)

    def test_changed_field_layout_is_logged(self):
        lines = ["#Fields: date time", "2024-01-01 00:00:01", "#Fields: date time c-ip", "2024-01-01 00:00:02 1.1.1.1"]
        with self.assertLogs("iislogs_to_excel.schema", level="WARNING") as logs:
            classify_lines(lines, source="u_ex2.log")
        self.assertIn("u_ex2.log", logs.output[0])


class ResolveSchemaTests(unittest.TestCase):
    def test_hour_is_inserted_after_date_and_time(self):
        schema = resolve_schema(SCENARIO_HEADER)
        self.assertEqual(schema.field_count, 9)
        self.assertEqual(len(schema.columns), schema.field_count + 1)
        self.assertEqual(schema.columns[:4], ("date", "time", "hour", "c-ip"))

    def test_numeric_columns_use_positions_after_hour_insertion(self):
        schema = resolve_schema(SCENARIO_HEADER)
        names = {schema.columns[index] for index in schema.numeric_columns}
        self.assertEqual(names, {"sc-status", "sc-substatus", "sc-bytes", "time-taken"})
        self.assertEqual(schema.column_index("sc-status"), 6)
        self.assertIn(5, schema.numeric_fields)
        self.assertEqual(source_index(6), 5)
        self.assertEqual(source_index(1), 1)

    def test_header_tokens_are_lowered_and_cleaned(self):
        schema = resolve_schema("Date Time CS-URI-Stem\x07")
        self.assertEqual(schema.fields, ("date", "time", "cs-uri-stem"))

    def test_blank_and_duplicate_headers_are_made_unique(self):
        schema = resolve_schema("date  time time hour")
        self.assertEqual(schema.fields, ("date", "column_2", "time", "time_2", "hour_2"))
        self.assertEqual(len(set(schema.columns)), len(schema.columns))

    def test_missing_time_column_is_invalid(self):
        with self.assertRaises(InvalidSchemaError) as ctx:
            resolve_schema("timestamp level message", source="app.log")
        self.assertEqual(ctx.exception.kind, INVALID_SCHEMA)
        self.assertIn("app.log is not a valid IIS log file", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
