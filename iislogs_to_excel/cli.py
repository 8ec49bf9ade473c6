from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from iislogs_to_excel import __version__ as TOOL_VERSION
from iislogs_to_excel.converter import BatchOptions, BatchResult, ConversionListener, LogConverter
from iislogs_to_excel.logs import clean_old_logs, configure_logging, log_file_path, shutdown_logging
from iislogs_to_excel.normalizer import formatted_size
from iislogs_to_excel.reader import discover_log_files
from iislogs_to_excel.settings import INI_KEYS, Settings, load_settings, reset_settings, save_settings
from iislogs_to_excel.taxonomy import FileOutcome

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_NO_LOGS = 2
EXIT_PARTIAL = 6
EXIT_CANCELLED = 130


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class IISLogsArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json_dumps(payload), encoding="utf-8")


class CliListener(ConversionListener):
    def __init__(self, *, quiet: bool = False, verbose: bool = False) -> None:
        self.quiet = quiet
        self.verbose = verbose

    def on_status(self, message: str) -> None:
        emit_human(message, quiet=self.quiet)

    def on_progress(self, percent: int) -> None:
        if self.verbose:
            emit_human(f"Progress: {percent}%", quiet=self.quiet)

    def on_file(self, outcome: FileOutcome) -> None:
        emit_human(f"[{outcome.status}] {outcome.path.name}", quiet=self.quiet)


class CancelOnInterrupt:
    """First Ctrl-C asks the batch to stop after the current file; a second one aborts."""

    def __init__(self, event: threading.Event) -> None:
        self.event = event
        self._previous = None

    def __enter__(self) -> "CancelOnInterrupt":
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)

    def _handle(self, signum, frame) -> None:
        if self.event.is_set():
            raise KeyboardInterrupt
        self.event.set()
        eprint("Cancelling after the current file... (Ctrl-C again to abort)")


def render_batch_text(result: BatchResult) -> str:
    counts = result.counts()
    lines = [
        "iislogs-to-excel convert",
        f"Folder: {result.folder}",
        f"Status: {result.status}",
        f"Files: {len(result.outcomes)} ({formatted_size(result.total_bytes)})",
        f"Succeeded: {counts['success']}",
        f"With warnings: {counts['warning']}",
        f"Failed: {counts['error']}",
        f"Progress: {result.percent}%",
    ]
    for outcome in result.outcomes:
        detail = f"{outcome.rows_written} rows"
        if outcome.rows_repaired:
            detail += f", {outcome.rows_repaired} repaired"
        if outcome.rows_skipped:
            detail += f", {outcome.rows_skipped} skipped"
        lines.append(f"- [{outcome.status}] {outcome.path.name}: {detail}")
        for issue in outcome.issues:
            if issue.line_number is None:
                lines.append(f"    {issue.kind}: {issue.message}")
    if result.output_paths:
        lines.append("Workbooks:")
        lines.extend(f"- {path}" for path in result.output_paths)
    return "\n".join(lines) + "\n"


def exit_code_for_batch(result: BatchResult) -> int:
    if result.cancelled:
        return EXIT_CANCELLED
    if result.status == "no_files":
        return EXIT_NO_LOGS
    if result.status == "partial":
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = IISLogsArgumentParser(prog="iislogs-to-excel", description="Convert IIS W3C log files into Excel workbooks.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert every .log file under a folder.")
    convert.add_argument("folder", nargs="?", default=None, help="Folder with IIS log files (defaults to the last used folder)")
    convert.add_argument("--single-workbook", action="store_true", help="Write all logs into one workbook named after the folder")
    convert.add_argument("--pivot", action="store_true", help="Add a pivot summary sheet per log sheet")
    convert.add_argument("--delete-sources", action="store_true", help="Delete log files once their workbook is saved")
    convert.add_argument("--json-summary", dest="json_summary", help="Write the batch summary JSON to this path")
    convert.add_argument("--json", action="store_true", help="Write the batch summary JSON to stdout")
    convert.add_argument("--log-dir", dest="log_dir", help="Directory for the daily log file (enables logging)")
    convert.add_argument("--no-log", dest="no_log", action="store_true", help="Disable the daily log file")
    convert.add_argument("--settings", help="Settings INI path")
    convert.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    convert.add_argument("-v", "--verbose", action="store_true", help="Also print progress percentages")

    listing = subparsers.add_parser("list", help="List the log files a conversion would pick up.")
    listing.add_argument("folder", help="Folder with IIS log files")

    clean = subparsers.add_parser("clean-logs", help="Delete old daily log files, keeping today's.")
    clean.add_argument("--log-dir", dest="log_dir", help="Directory holding the daily log files")

    settings = subparsers.add_parser("settings", help="Show or reset saved settings.")
    settings_subparsers = settings.add_subparsers(dest="settings_command", required=True)
    for name, help_text in (("show", "Print the saved settings"), ("reset", "Restore default settings")):
        sub = settings_subparsers.add_parser(name, help=help_text)
        sub.add_argument("--settings", help="Settings INI path")

    subparsers.add_parser("version", help="Print version")
    return parser


def resolve_options(args: argparse.Namespace, settings: Settings) -> BatchOptions:
    return BatchOptions(
        single_workbook=args.single_workbook or settings.single_workbook,
        create_pivot=args.pivot or settings.create_pivot,
        delete_sources=args.delete_sources,
    )


def run_convert(args: argparse.Namespace) -> int:
    settings_path = Path(args.settings) if args.settings else None
    settings, issues = load_settings(settings_path)
    for issue in issues:
        emit_human(f"Warning: {issue.message}", quiet=args.quiet)

    folder_arg = args.folder or settings.folder_path
    if not folder_arg:
        raise CliError("No folder given and no folder saved in settings.", EXIT_COMMAND_ERROR)
    folder = Path(folder_arg)
    if not folder.is_dir():
        eprint(f"Folder not found: {folder}")
        return EXIT_NO_LOGS

    logging_enabled = (settings.enable_logging or bool(args.log_dir)) and not args.no_log
    logger, log_issues = configure_logging(logging_enabled, Path(args.log_dir) if args.log_dir else None)
    for issue in log_issues:
        emit_human(f"Warning: {issue.message}", quiet=args.quiet)

    try:
        options = resolve_options(args, settings)
        converter = LogConverter(logger=logger, listener=CliListener(quiet=args.quiet or args.json, verbose=args.verbose))
        cancel_event = threading.Event()
        with CancelOnInterrupt(cancel_event):
            result = converter.convert_folder(folder, options, cancel_event)
    finally:
        shutdown_logging(logger)

    settings.folder_path = str(folder.resolve())
    saved, save_issues = save_settings(settings, settings_path)
    if not saved:
        for issue in save_issues:
            emit_human(f"Warning: {issue.message}", quiet=args.quiet)

    if result.status == "no_files":
        eprint(f"No log files found in {folder}")
        return EXIT_NO_LOGS

    summary = result.summary()
    if args.json_summary:
        write_json(Path(args.json_summary), summary)
    if args.json:
        print(json_dumps(summary))
    else:
        emit_human(render_batch_text(result).rstrip(), quiet=args.quiet)
        if args.json_summary:
            emit_human(f"Batch summary: {args.json_summary}", quiet=args.quiet)
    return exit_code_for_batch(result)


def run_list(args: argparse.Namespace) -> int:
    folder = Path(args.folder)
    log_files = discover_log_files(folder)
    if not log_files:
        eprint(f"No log files found in {folder}")
        return EXIT_NO_LOGS
    for log_file in log_files:
        print(f"{log_file.path}\t{formatted_size(log_file.size)}")
    total = sum(log_file.size for log_file in log_files)
    print(f"{len(log_files)} file(s), {formatted_size(total)}")
    return EXIT_SUCCESS


def run_clean_logs(args: argparse.Namespace) -> int:
    log_dir = Path(args.log_dir) if args.log_dir else None
    removed = clean_old_logs(log_dir)
    print(f"Removed {removed} old log file(s); kept {log_file_path(log_dir or Path.cwd()).name}")
    return EXIT_SUCCESS


def render_settings_text(settings: Settings) -> str:
    return "\n".join(f"{key} = {getattr(settings, name)}" for name, key in INI_KEYS.items()) + "\n"


def run_settings(args: argparse.Namespace) -> int:
    path = Path(args.settings) if args.settings else None
    if args.settings_command == "reset":
        settings, issues = reset_settings(path)
        if issues:
            for issue in issues:
                eprint(issue.message)
            return EXIT_COMMAND_ERROR
    else:
        settings, issues = load_settings(path)
        for issue in issues:
            eprint(f"Warning: {issue.message}")
    print(render_settings_text(settings).rstrip())
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "convert":
            return run_convert(args)
        if args.command == "list":
            return run_list(args)
        if args.command == "clean-logs":
            return run_clean_logs(args)
        if args.command == "settings":
            return run_settings(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code
    except KeyboardInterrupt:
        eprint("Aborted.")
        return EXIT_CANCELLED


if __name__ == "__main__":
    raise SystemExit(main())
