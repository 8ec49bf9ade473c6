"""
Pivot-style summary sheet for a materialised log sheet.

openpyxl can read pivot tables but cannot author a pivot cache, so the
summary is computed with pandas and written as a static table laid out the
way the Excel pivot would show it: one row per request time, the hour as the
filter column, a request count and the average time taken.
"""

from __future__ import annotations

import pandas as pd
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from iislogs_to_excel.constants import (
    GRAND_TOTAL,
    HOUR,
    PIVOT_PREFIX,
    TIME,
    TIME_TAKEN,
    TIME_TAKEN_AVG,
    URI_STEM,
    URI_STEM_COUNT,
)
from iislogs_to_excel.workbook import style_header, unique_name

PIVOT_HEADERS = [HOUR, TIME, URI_STEM_COUNT, TIME_TAKEN_AVG]
PIVOT_WIDTHS = [10, 16, 20, 17]
REQUIRED_COLUMNS = (TIME, URI_STEM, TIME_TAKEN)


def sheet_frame(ws) -> pd.DataFrame:
    """Load a log sheet's used range (header + data rows) into a DataFrame."""
    rows = ws.iter_rows(values_only=True)
    header = next(rows, None)
    if header is None:
        return pd.DataFrame()
    return pd.DataFrame(list(rows), columns=list(header))


def summarise(frame: pd.DataFrame) -> pd.DataFrame:
    data = frame[[TIME, URI_STEM, TIME_TAKEN]].copy()
    data[TIME] = data[TIME].fillna("").astype(str)
    data[HOUR] = data[TIME].str.slice(0, 5)
    data[TIME_TAKEN] = pd.to_numeric(data[TIME_TAKEN], errors="coerce")
    summary = (
        data.groupby([HOUR, TIME], sort=True)
        .agg(**{URI_STEM_COUNT: (URI_STEM, "count"), TIME_TAKEN_AVG: (TIME_TAKEN, "mean")})
        .reset_index()
    )
    return summary[PIVOT_HEADERS]


def _cell_number(value):
    if value is None or pd.isna(value):
        return None
    return float(value)


def build_pivot_sheet(workbook, ws, sheet_name: str) -> tuple[object | None, str]:
    """
    Add ``Pivot_<sheet_name>`` after the log sheet.

    Returns (pivot_sheet, "") on success and (None, reason) when the log
    sheet has nothing to summarise. Never raises for an empty sheet.
    """
    frame = sheet_frame(ws)
    if frame.empty:
        return None, f"sheet {sheet_name} has no data rows"
    missing = [name for name in REQUIRED_COLUMNS if name not in frame.columns]
    if missing:
        return None, f"sheet {sheet_name} has no {', '.join(missing)} column"

    summary = summarise(frame)
    pivot = workbook.create_sheet(unique_name(f"{PIVOT_PREFIX}{sheet_name}", workbook.sheetnames))
    pivot.append(PIVOT_HEADERS)
    style_header(pivot, len(PIVOT_HEADERS))

    for hour, time, count, average in summary.itertuples(index=False, name=None):
        pivot.append([hour, time, int(count), _cell_number(average)])
    last_row = pivot.max_row

    total_average = pd.to_numeric(frame[TIME_TAKEN], errors="coerce").mean()
    pivot.append([GRAND_TOTAL, None, int(frame[URI_STEM].count()), _cell_number(total_average)])
    for cell in pivot[pivot.max_row]:
        cell.font = Font(bold=True)

    avg_col = get_column_letter(PIVOT_HEADERS.index(TIME_TAKEN_AVG) + 1)
    for cell in pivot[avg_col][1:]:
        cell.number_format = "0"
    for i, width in enumerate(PIVOT_WIDTHS, start=1):
        pivot.column_dimensions[get_column_letter(i)].width = width
    pivot.auto_filter.ref = f"A1:{get_column_letter(len(PIVOT_HEADERS))}{last_row}"
    return pivot, ""
