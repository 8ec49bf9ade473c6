"""
Batch conversion of a folder of IIS logs into Excel workbooks.

Public API:
    converter = LogConverter(listener=MyListener())
    result = converter.convert_folder(folder, BatchOptions(create_pivot=True))

Files are processed one at a time in discovery order. Every per-file fault
becomes an issue on that file's ``FileOutcome``; only a cancellation request
ends the batch early.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from iislogs_to_excel import __version__
from iislogs_to_excel.constants import (
    DEFAULT_LOG_SHEET,
    EXCEL_EXTENSION,
    MAX_DATA_ROWS,
    MSG_CREATE_PIVOT,
    MSG_CREATE_SHEET,
    MSG_EXPORTING,
    MSG_PROCESSING_CANCELLED,
    MSG_PROCESSING_COMPLETED,
    MSG_PROCESSING_FILE,
    MSG_PROCESSING_STARTED,
    STATUS_NAME_LENGTH,
)
from iislogs_to_excel.contracts import BATCH_SUMMARY, build_contract, build_run_summary
from iislogs_to_excel.errors import LogFormatError
from iislogs_to_excel.logs import log_run_marker
from iislogs_to_excel.normalizer import formatted_size
from iislogs_to_excel.pivot import build_pivot_sheet
from iislogs_to_excel.reader import LogFile, discover_log_files, read_log_lines, status_name
from iislogs_to_excel.reconciler import RowReconciler, byte_length
from iislogs_to_excel.schema import classify_lines, resolve_schema
from iislogs_to_excel.taxonomy import (
    CONVERSION_FAILURE,
    NOT_EXPORTED,
    PERSIST_FAILURE,
    PIVOT_BUILD_FAILURE,
    ROW_LIMIT_EXCEEDED,
    STATUS_SUCCESS,
    FileOutcome,
)
from iislogs_to_excel.workbook import new_workbook, save_workbook, short_name, unique_name, write_log_sheet


@dataclass
class BatchOptions:
    single_workbook: bool = False
    create_pivot: bool = False
    delete_sources: bool = False


class ConversionListener:
    """Receives status text, progress and finished files. Override what you need."""

    def on_status(self, message: str) -> None:
        pass

    def on_progress(self, percent: int) -> None:
        pass

    def on_file(self, outcome: FileOutcome) -> None:
        pass


class ProgressTracker:
    """
    Byte-based progress for one batch.

    Bytes reported while a file is being read are capped at the cumulative
    size of the files started so far, and the counter snaps to that size when
    a file finishes. The listener only hears about percentage changes.
    """

    def __init__(self, total: int, listener: ConversionListener) -> None:
        self.total = total
        self.processed = 0
        self.ceiling = 0
        self.listener = listener
        self._reported: int | None = None

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return min(self.processed * 100 // self.total, 100)

    def start_file(self, size: int) -> None:
        self.ceiling += size

    def advance(self, size: int) -> None:
        self.processed = min(self.processed + size, self.ceiling)
        self.report()

    def finish_file(self) -> None:
        self.processed = self.ceiling
        self.report()

    def report(self) -> None:
        percent = self.percent
        if percent != self._reported:
            self._reported = percent
            self.listener.on_progress(percent)


@dataclass
class BatchResult:
    folder: Path
    options: BatchOptions
    total_bytes: int = 0
    outcomes: list[FileOutcome] = field(default_factory=list)
    output_paths: list[Path] = field(default_factory=list)
    cancelled: bool = False
    percent: int = 0
    elapsed_seconds: float = 0.0

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        if not self.outcomes:
            return "no_files"
        if all(outcome.status == STATUS_SUCCESS for outcome in self.outcomes):
            return "ok"
        return "partial"

    def counts(self) -> dict[str, int]:
        counts = {"success": 0, "warning": 0, "error": 0}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return counts

    def summary(self) -> dict[str, Any]:
        """JSON-ready batch summary (``iislogs_to_excel.batch_summary`` contract)."""
        counts = self.counts()
        warnings = [
            f"{outcome.path.name}: {issue.message}"
            for outcome in self.outcomes
            for issue in outcome.issues
            if issue.line_number is None
        ]
        return {
            "contract": build_contract(BATCH_SUMMARY),
            "tool_version": __version__,
            "options": {
                "single_workbook": self.options.single_workbook,
                "create_pivot": self.options.create_pivot,
                "delete_sources": self.options.delete_sources,
            },
            "run_summary": build_run_summary(
                tool="iislogs-to-excel",
                command="convert",
                input_path=self.folder,
                status=self.status,
                output_paths=self.output_paths,
                metrics={
                    "files_found": len(self.outcomes),
                    "files_succeeded": counts["success"],
                    "files_with_warnings": counts["warning"],
                    "files_failed": counts["error"],
                    "total_bytes": self.total_bytes,
                    "rows_written": sum(o.rows_written for o in self.outcomes),
                    "rows_repaired": sum(o.rows_repaired for o in self.outcomes),
                    "rows_skipped": sum(o.rows_skipped for o in self.outcomes),
                    "rows_truncated": sum(o.rows_truncated for o in self.outcomes),
                    "pivots_created": sum(1 for o in self.outcomes if o.pivot_created),
                    "progress_percent": self.percent,
                    "elapsed_seconds": round(self.elapsed_seconds, 3),
                },
                warnings=warnings,
            ),
            "files": [outcome.as_dict() for outcome in self.outcomes],
        }


class LogConverter:
    def __init__(
        self,
        logger: logging.Logger | None = None,
        listener: ConversionListener | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.listener = listener or ConversionListener()
        self.runs = 0

    # ── batch ──────────────────────────────────────────────────────────────

    def convert_folder(
        self,
        folder: Path,
        options: BatchOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        folder = Path(folder)
        options = options or BatchOptions()
        started = time.perf_counter()
        log_files = discover_log_files(folder)
        total = sum(log_file.size for log_file in log_files)
        result = BatchResult(folder=folder, options=options, total_bytes=total)
        tracker = ProgressTracker(total, self.listener)

        self.runs += 1
        self._status(MSG_PROCESSING_STARTED)
        self.logger.info(
            "Processing started for folder %s: %d log file(s), %s.",
            folder,
            len(log_files),
            formatted_size(total),
        )
        tracker.report()

        workbook = new_workbook() if options.single_workbook else None
        in_workbook: list[FileOutcome] = []
        used_outputs: list[str] = []

        for log_file in log_files:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                break

            tracker.start_file(log_file.size)
            outcome = FileOutcome(path=log_file.path)
            result.outcomes.append(outcome)
            self._status(MSG_PROCESSING_FILE.format(name=status_name(log_file.path, STATUS_NAME_LENGTH)))
            self.logger.info("Processing file %s (%s).", log_file.path, formatted_size(log_file.size))

            if options.single_workbook:
                self._convert_file(workbook, log_file, short_name(log_file.path), options, outcome, tracker)
                tracker.finish_file()
                if outcome.sheet_name:
                    in_workbook.append(outcome)
                else:
                    self.listener.on_file(outcome)
                continue

            book = new_workbook()
            self._convert_file(book, log_file, DEFAULT_LOG_SHEET, options, outcome, tracker)
            tracker.finish_file()
            if outcome.sheet_name:
                name = unique_name(short_name(log_file.path), used_outputs)
                used_outputs.append(name)
                self._export(book, folder / f"{name}{EXCEL_EXTENSION}", [outcome], options, result)
            self.listener.on_file(outcome)

        if workbook is not None:
            if in_workbook and not result.cancelled:
                output_path = folder / f"{folder.name or DEFAULT_LOG_SHEET}{EXCEL_EXTENSION}"
                self._export(workbook, output_path, in_workbook, options, result)
            elif in_workbook:
                for outcome in in_workbook:
                    outcome.add(
                        NOT_EXPORTED,
                        f"Sheet {outcome.sheet_name} for {outcome.path.name} was not saved: processing was cancelled.",
                    )
                    outcome.sheet_name = None
            for outcome in in_workbook:
                self.listener.on_file(outcome)

        result.percent = tracker.percent
        result.elapsed_seconds = time.perf_counter() - started
        if result.cancelled:
            self._status(MSG_PROCESSING_CANCELLED)
            self.logger.warning("Processing cancelled after %d file(s).", len(result.outcomes))
        else:
            self._status(MSG_PROCESSING_COMPLETED)
            self.logger.info(
                "Processing completed in %.2f seconds: %s.",
                result.elapsed_seconds,
                ", ".join(f"{count} {status}" for status, count in result.counts().items()),
            )
        log_run_marker(self.logger, self.runs)
        return result

    # ── one file ───────────────────────────────────────────────────────────

    def _convert_file(
        self,
        workbook,
        log_file: LogFile,
        sheet_base: str,
        options: BatchOptions,
        outcome: FileOutcome,
        tracker: ProgressTracker,
    ) -> None:
        source = log_file.path.name
        created: list[str] = []
        try:
            classified = classify_lines(read_log_lines(log_file.path), source=source)
            schema = resolve_schema(classified.fields_line, source=source)
            tracker.advance(byte_length(classified.fields_line))

            sheet_name = unique_name(sheet_base, workbook.sheetnames)
            self._status(MSG_CREATE_SHEET.format(sheet=sheet_name))
            ws = workbook.create_sheet(sheet_name)
            created.append(sheet_name)

            reconciler = RowReconciler(schema, source=source)
            sheet = write_log_sheet(ws, schema, reconciler.reconcile(classified.data_lines), tracker.advance)
            outcome.issues.extend(reconciler.issues)
            outcome.rows_written = sheet.rows_written
            outcome.rows_repaired = reconciler.rows_repaired
            outcome.rows_skipped = reconciler.rows_skipped
            outcome.rows_truncated = sheet.rows_truncated
            if sheet.rows_truncated:
                message = (
                    f"{sheet.rows_truncated} row(s) in file {source} beyond the sheet limit of "
                    f"{MAX_DATA_ROWS} were not written."
                )
                self.logger.warning(message)
                outcome.add(ROW_LIMIT_EXCEEDED, message)

            if options.create_pivot:
                self._status(MSG_CREATE_PIVOT.format(sheet=sheet_name))
                pivot, reason = build_pivot_sheet(workbook, ws, sheet_name)
                if pivot is None:
                    message = f"Pivot table not created for file {source}: {reason}."
                    self.logger.warning(message)
                    outcome.add(PIVOT_BUILD_FAILURE, message)
                else:
                    created.append(pivot.title)
                    outcome.pivot_created = True
            outcome.sheet_name = sheet_name
        except LogFormatError as exc:
            self.logger.error(str(exc))
            outcome.add(exc.kind, str(exc))
        except OSError as exc:
            message = f"Could not read file {log_file.path}: {exc}"
            self.logger.error(message)
            outcome.add(CONVERSION_FAILURE, message)
            self._discard(workbook, created, outcome)
        except Exception as exc:
            message = f"Error processing file {log_file.path}: {exc}"
            self.logger.exception(message)
            outcome.add(CONVERSION_FAILURE, message)
            self._discard(workbook, created, outcome)

    @staticmethod
    def _discard(workbook, sheet_names: list[str], outcome: FileOutcome) -> None:
        for name in sheet_names:
            if name in workbook.sheetnames:
                workbook.remove(workbook[name])
        outcome.sheet_name = None
        outcome.pivot_created = False
        outcome.rows_written = 0

    # ── export ─────────────────────────────────────────────────────────────

    def _export(
        self,
        workbook,
        output_path: Path,
        outcomes: list[FileOutcome],
        options: BatchOptions,
        result: BatchResult,
    ) -> None:
        self._status(MSG_EXPORTING.format(file=output_path.name))
        try:
            save_workbook(workbook, output_path)
        except Exception as exc:
            message = f"Could not save workbook {output_path}: {exc}"
            self.logger.error(message)
            for outcome in outcomes:
                outcome.add(PERSIST_FAILURE, message)
            return

        self.logger.info("Workbook saved: %s", output_path)
        result.output_paths.append(output_path)
        for outcome in outcomes:
            outcome.output_path = output_path
            if options.delete_sources:
                self._delete_source(outcome)

    def _delete_source(self, outcome: FileOutcome) -> None:
        try:
            outcome.path.unlink()
        except OSError as exc:
            message = f"Could not delete source file {outcome.path}: {exc}"
            self.logger.error(message)
            outcome.add(PERSIST_FAILURE, message)
            return
        self.logger.info("Source file deleted: %s", outcome.path)

    def _status(self, message: str) -> None:
        self.listener.on_status(message)
