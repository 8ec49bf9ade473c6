#!/usr/bin/env python3
from __future__ import annotations

import sys
import threading
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from iislogs_to_excel import __version__  # noqa: E402
from iislogs_to_excel.converter import BatchOptions, BatchResult, ConversionListener, LogConverter  # noqa: E402
from iislogs_to_excel.logs import configure_logging, shutdown_logging  # noqa: E402
from iislogs_to_excel.normalizer import formatted_size  # noqa: E402
from iislogs_to_excel.reader import discover_log_files  # noqa: E402
from iislogs_to_excel.settings import Settings, load_settings, save_settings  # noqa: E402
from iislogs_to_excel.taxonomy import STATUS_COLORS, FileOutcome  # noqa: E402

LIGHT_THEME = {"bg": "#ffffff", "text": "#2a2a32", "panel": "#fafafe", "border": "#e8e8f0"}
DARK_THEME = {"bg": "#1a1a1a", "text": "#f4f4f8", "panel": "#22222b", "border": "#42424f"}


class StreamlitListener(ConversionListener):
    """Pushes converter events into Streamlit placeholders."""

    def __init__(self, status_box, progress_box) -> None:
        self.status_box = status_box
        self.progress_bar = progress_box.progress(0, text="Waiting...")

    def on_status(self, message: str) -> None:
        self.status_box.caption(message)

    def on_progress(self, percent: int) -> None:
        self.progress_bar.progress(percent, text=f"{percent}%")

    def on_file(self, outcome: FileOutcome) -> None:
        st.toast(f"{outcome.path.name}: {outcome.status}")


def listing_frame(folder: str) -> pd.DataFrame:
    files = discover_log_files(Path(folder)) if folder else []
    return pd.DataFrame(
        [{"file": str(item.path.name), "size": formatted_size(item.size)} for item in files],
        columns=["file", "size"],
    )


def outcome_rows(result: BatchResult) -> list[dict]:
    rows = []
    for outcome in result.outcomes:
        rows.append(
            {
                "file": outcome.path.name,
                "status": outcome.status,
                "color": STATUS_COLORS[outcome.status],
                "sheet": outcome.sheet_name or "",
                "rows": outcome.rows_written,
                "repaired": outcome.rows_repaired,
                "skipped": outcome.rows_skipped,
                "workbook": outcome.output_path.name if outcome.output_path else "",
                "messages": [issue.message for issue in outcome.issues if issue.line_number is None],
            }
        )
    return rows


def settings_from_form(folder: str, single: bool, pivot: bool, logging_on: bool, dark: bool) -> Settings:
    return Settings(
        single_workbook=single,
        create_pivot=pivot,
        enable_logging=logging_on,
        dark_mode=dark,
        folder_path=folder.strip(),
    )


def set_visuals(dark_mode: bool) -> None:
    theme = DARK_THEME if dark_mode else LIGHT_THEME
    st.set_page_config(page_title="IIS Logs to Excel", layout="centered")
    st.markdown(
        f"""
        <style>
        .stApp {{ background: {theme['bg']}; color: {theme['text']}; }}
        .log-row {{
            padding: 0.35rem 0.75rem;
            margin-bottom: 0.25rem;
            border: 1px solid {theme['border']};
            border-radius: 6px;
            background: {theme['panel']};
        }}
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_results(rows: list[dict]) -> None:
    if not rows:
        return
    st.subheader("Results")
    metrics = st.columns(3)
    metrics[0].metric("Files processed", len(rows))
    metrics[1].metric("Succeeded", sum(1 for row in rows if row["status"] == "success"))
    metrics[2].metric("Need review", sum(1 for row in rows if row["status"] != "success"))
    for row in rows:
        st.markdown(
            f'<div class="log-row" style="color: {row["color"]}">'
            f'{row["file"]}: {row["status"].upper()} ({row["rows"]} rows)</div>',
            unsafe_allow_html=True,
        )
        for message in row["messages"]:
            if row["status"] == "error":
                st.error(message)
            else:
                st.warning(message)


def run_batch(settings: Settings, delete_sources: bool) -> list[dict]:
    logger, issues = configure_logging(settings.enable_logging)
    for issue in issues:
        st.warning(issue.message)
    listener = StreamlitListener(st.empty(), st.empty())
    try:
        result = LogConverter(logger=logger, listener=listener).convert_folder(
            Path(settings.folder_path),
            BatchOptions(
                single_workbook=settings.single_workbook,
                create_pivot=settings.create_pivot,
                delete_sources=delete_sources,
            ),
            threading.Event(),
        )
    finally:
        shutdown_logging(logger)
    if result.status == "no_files":
        st.warning(f"No log files found in {settings.folder_path}")
    for path in result.output_paths:
        st.success(f"Saved {path}")
    return outcome_rows(result)


def main() -> None:
    saved, issues = load_settings()
    st.session_state.setdefault("results", [])
    set_visuals(saved.dark_mode)

    st.title("IIS Logs to Excel")
    st.caption(f"Version {__version__}. Converts IIS W3C log files into Excel workbooks.")
    for issue in issues:
        st.warning(issue.message)

    folder = st.text_input("Log folder", value=saved.folder_path)
    cols = st.columns(2)
    single = cols[0].checkbox("Single workbook", value=saved.single_workbook)
    pivot = cols[0].checkbox("Create pivot tables", value=saved.create_pivot)
    logging_on = cols[1].checkbox("Enable logging", value=saved.enable_logging)
    dark = cols[1].checkbox("Dark mode", value=saved.dark_mode)
    delete_sources = st.checkbox("Delete log files after export", value=False)

    settings = settings_from_form(folder, single, pivot, logging_on, dark)
    if settings != saved:
        ok, save_issues = save_settings(settings)
        if not ok:
            for issue in save_issues:
                st.warning(issue.message)

    if settings.folder_path:
        frame = listing_frame(settings.folder_path)
        if frame.empty:
            st.info("No .log files in this folder.")
        else:
            st.dataframe(frame, hide_index=True)

    ready = bool(settings.folder_path) and Path(settings.folder_path).is_dir()
    if st.button("Convert", type="primary", disabled=not ready):
        st.session_state["results"] = run_batch(settings, delete_sources)

    render_results(st.session_state["results"])


if __name__ == "__main__":
    main()
