from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from iislogs_to_excel.constants import (
    DEFAULT_LOG_SHEET,
    DEFAULT_ROW_HEIGHT,
    EXTENSION_SEPARATOR,
    HEADER_FILL,
    HOUR_FORMULA,
    HOUR_POSITION,
    INVALID_SHEET_CHARS,
    MAX_DATA_ROWS,
    NAME_SEPARATOR,
    SHEET_NAME_LENGTH,
)
from iislogs_to_excel.normalizer import valid_number
from iislogs_to_excel.reconciler import ReconciledRow
from iislogs_to_excel.schema import Schema, source_index

WIDTH_SAMPLE_ROWS = 300


@dataclass
class SheetResult:
    rows_written: int = 0
    rows_truncated: int = 0

    @property
    def last_row(self) -> int:
        return self.rows_written + 1


# ── Naming ─────────────────────────────────────────────────────────────────

def short_name(path: Path, length: int = SHEET_NAME_LENGTH) -> str:
    """Last ``length`` characters of the file stem after its final '-'."""
    name = Path(path).name.split(NAME_SEPARATOR)[-1].split(EXTENSION_SEPARATOR)[0]
    name = "".join(ch for ch in name if ch not in INVALID_SHEET_CHARS)
    if not name:
        return DEFAULT_LOG_SHEET
    return name[-length:] if len(name) > length else name


def unique_name(base: str, existing: Iterable[str]) -> str:
    """Return ``base``, or ``base-2``, ``base-3`` ... when it is already taken."""
    taken = {name.lower() for name in existing}
    if base.lower() not in taken:
        return base
    count = 2
    while f"{base}-{count}".lower() in taken:
        count += 1
    return f"{base}-{count}"


# ── Styling ────────────────────────────────────────────────────────────────

def style_header(ws, column_count: int) -> None:
    """Bold grey header, frozen above the data."""
    fill = PatternFill("solid", fgColor=HEADER_FILL)
    font = Font(bold=True)
    for cell in ws[1][:column_count]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"


def _widen(widths: list[int], values: Iterable, min_width: int = 10, max_width: int = 60) -> None:
    """Grow ``widths`` in place so each column fits its value in ``values``."""
    for i, value in enumerate(values):
        needed = min(max_width, max(min_width, len(str(value)) + 2))
        if i == len(widths):
            widths.append(needed)
        elif needed > widths[i]:
            widths[i] = needed


def _set_col_widths(ws, widths: list[int]) -> None:
    for i, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _hide_unused_rows(ws, last_row: int) -> None:
    # Rows are hidden by default; only the rows we wrote get an explicit height.
    ws.sheet_format.zeroHeight = True
    for row_idx in range(1, last_row + 1):
        ws.row_dimensions[row_idx].height = DEFAULT_ROW_HEIGHT


# ── Sheet materialisation ──────────────────────────────────────────────────

def row_values(schema: Schema, tokens: list[str], row_idx: int) -> list:
    """Lay out one reconciled row in sheet column order, hour formula included."""
    values: list = []
    for column_idx in range(len(schema.columns)):
        if column_idx == HOUR_POSITION:
            values.append(HOUR_FORMULA.format(row=row_idx))
            continue
        token = tokens[source_index(column_idx)]
        values.append(valid_number(token) if column_idx in schema.numeric_columns else token)
    return values


def write_log_sheet(
    ws,
    schema: Schema,
    rows: Iterable[ReconciledRow],
    on_progress: Callable[[int], None] | None = None,
) -> SheetResult:
    result = SheetResult()
    column_count = len(schema.columns)
    ws.append(list(schema.columns))
    style_header(ws, column_count)
    widths: list[int] = []
    _widen(widths, schema.columns)

    for row in rows:
        if result.rows_written >= MAX_DATA_ROWS:
            result.rows_truncated += 1
            continue
        row_idx = result.last_row + 1
        values = row_values(schema, row.tokens, row_idx)
        ws.append(values)
        for column_idx, value in enumerate(values, start=1):
            # Log text that merely starts with '=' must stay text, not become a formula.
            if column_idx != HOUR_POSITION + 1 and isinstance(value, str) and value.startswith("="):
                ws.cell(row=row_idx, column=column_idx).data_type = "s"
        result.rows_written += 1
        if result.rows_written <= WIDTH_SAMPLE_ROWS:
            _widen(widths, values[:HOUR_POSITION] + ["hh:mm"] + values[HOUR_POSITION + 1 :])
        if on_progress is not None:
            on_progress(row.byte_length)

    _set_col_widths(ws, widths)
    _hide_unused_rows(ws, result.last_row)
    ws.auto_filter.ref = f"A1:{get_column_letter(column_count)}{result.last_row}"
    return result


# ── Workbook lifecycle ─────────────────────────────────────────────────────

def new_workbook() -> openpyxl.Workbook:
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    return workbook


def save_workbook(workbook: openpyxl.Workbook, output_path: Path) -> None:
    """Save via a temp file in the target folder so a failed save never clobbers the old file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{output_path.stem}.",
        suffix=output_path.suffix,
        dir=str(output_path.parent),
    )
    os.close(fd)
    temp_path = Path(tmp_name)
    try:
        workbook.save(temp_path)
        os.replace(temp_path, output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
