"""
Shared outcome taxonomy.

Every per-file result, row issue and collaborator failure reported by the
converter is one of the kinds below, so the CLI, the UI and the JSON summary
agree on severity and wording.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

EMPTY_FILE = "empty_file"
INVALID_SCHEMA = "invalid_schema"
UNRECOVERABLE_ROW = "unrecoverable_row"
REPAIRED_ROW = "repaired_row"
ROW_LIMIT_EXCEEDED = "row_limit_exceeded"
PIVOT_BUILD_FAILURE = "pivot_build_failure"
PERSIST_FAILURE = "persist_failure"
CONVERSION_FAILURE = "conversion_failure"
NOT_EXPORTED = "not_exported"
SETTINGS_IO_FAILURE = "settings_io_failure"
LOG_INIT_FAILURE = "log_init_failure"

OUTCOME_DEFINITIONS = {
    EMPTY_FILE: {"severity": "error", "label": "Empty log file"},
    INVALID_SCHEMA: {"severity": "error", "label": "Not a W3C extended log file"},
    UNRECOVERABLE_ROW: {"severity": "warning", "label": "Row skipped"},
    REPAIRED_ROW: {"severity": "warning", "label": "Row repaired"},
    ROW_LIMIT_EXCEEDED: {"severity": "warning", "label": "Sheet row limit reached"},
    PIVOT_BUILD_FAILURE: {"severity": "warning", "label": "Pivot table not created"},
    PERSIST_FAILURE: {"severity": "error", "label": "Workbook not saved"},
    CONVERSION_FAILURE: {"severity": "error", "label": "File could not be converted"},
    NOT_EXPORTED: {"severity": "warning", "label": "Batch cancelled before the workbook was saved"},
    SETTINGS_IO_FAILURE: {"severity": "warning", "label": "Settings unavailable"},
    LOG_INIT_FAILURE: {"severity": "warning", "label": "Logging disabled"},
}

STATUS_SUCCESS = "success"
STATUS_WARNING = "warning"
STATUS_ERROR = "error"

# Colour classes used by the UI list (the original tool painted failed rows tomato).
STATUS_COLORS = {
    STATUS_SUCCESS: "#2E7D32",
    STATUS_WARNING: "#FF6347",
    STATUS_ERROR: "#FF6347",
}


def severity(kind: str) -> str:
    return OUTCOME_DEFINITIONS[kind]["severity"]


@dataclass
class Issue:
    kind: str
    message: str
    line_number: int | None = None

    @property
    def severity(self) -> str:
        return severity(self.kind)

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "severity": self.severity,
            "message": self.message,
            "line_number": self.line_number,
        }


@dataclass
class FileOutcome:
    path: Path
    sheet_name: str | None = None
    output_path: Path | None = None
    issues: list[Issue] = field(default_factory=list)
    rows_written: int = 0
    rows_repaired: int = 0
    rows_skipped: int = 0
    rows_truncated: int = 0
    pivot_created: bool = False

    def add(self, kind: str, message: str, line_number: int | None = None) -> Issue:
        issue = Issue(kind=kind, message=message, line_number=line_number)
        self.issues.append(issue)
        return issue

    @property
    def status(self) -> str:
        severities = {issue.severity for issue in self.issues}
        if "error" in severities:
            return STATUS_ERROR
        if "warning" in severities:
            return STATUS_WARNING
        return STATUS_SUCCESS

    @property
    def color(self) -> str:
        return STATUS_COLORS[self.status]

    def kinds(self) -> list[str]:
        return [issue.kind for issue in self.issues]

    def as_dict(self) -> dict[str, Any]:
        return {
            "file": str(self.path),
            "status": self.status,
            "sheet_name": self.sheet_name,
            "output_file": str(self.output_path) if self.output_path else None,
            "rows_written": self.rows_written,
            "rows_repaired": self.rows_repaired,
            "rows_skipped": self.rows_skipped,
            "rows_truncated": self.rows_truncated,
            "pivot_created": self.pivot_created,
            "issues": [issue.as_dict() for issue in self.issues],
        }
