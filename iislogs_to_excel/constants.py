from __future__ import annotations

APP_NAME = "IISLogsToExcel"
SETTINGS_FILE = f"{APP_NAME}.ini"
LOG_FILE_PREFIX = APP_NAME
LOG_EXTENSION = ".log"
EXCEL_EXTENSION = ".xlsx"

# ── W3C extended log tokens ────────────────────────────────────────────────
COMMENT_MARKER = "#"
FIELDS_MARKER = "#Fields:"
TOKEN_SEPARATOR = " "
NAME_SEPARATOR = "-"
EXTENSION_SEPARATOR = "."

# ── Header names ───────────────────────────────────────────────────────────
DATE = "date"
TIME = "time"
HOUR = "hour"
URI_STEM = "cs-uri-stem"
TIME_TAKEN = "time-taken"
URI_STEM_COUNT = f"{URI_STEM}[count]"
TIME_TAKEN_AVG = f"{TIME_TAKEN}[avg]"

HOUR_POSITION = 2
HOUR_FORMULA = '=TEXT(B{row},"hh:mm")'

NUMBER_FIELDS = (
    "s-port",
    "sc-status",
    "sc-substatus",
    "sc-win32-status",
    "sc-bytes",
    "cs-bytes",
    "time-taken",
)

# ── Workbook layout ────────────────────────────────────────────────────────
MAX_SHEET_ROWS = 1_048_576
MAX_DATA_ROWS = MAX_SHEET_ROWS - 1
DEFAULT_ROW_HEIGHT = 15
SHEET_NAME_LENGTH = 6
STATUS_NAME_LENGTH = 10
DEFAULT_LOG_SHEET = "IIS_Logs"
PIVOT_PREFIX = "Pivot_"
GRAND_TOTAL = "Grand Total"
HEADER_FILL = "B2BEB5"   # ash grey
INVALID_SHEET_CHARS = "[]:*?/\\"

# ── Log file markers ───────────────────────────────────────────────────────
LOG_HEADER = "=" * 61
RUN_MARKER = "#########~{count}~#########"

# ── Status messages ────────────────────────────────────────────────────────
MSG_PROCESSING_STARTED = "Processing..."
MSG_PROCESSING_FILE = "Processing data for file {name}..."
MSG_CREATE_SHEET = "Creating IIS log sheet - {sheet}..."
MSG_CREATE_PIVOT = "Creating pivot table for sheet - {sheet}..."
MSG_EXPORTING = "Exporting data to excel file - {file}..."
MSG_PROCESSING_COMPLETED = "Processing complete."
MSG_PROCESSING_CANCELLED = "Processing cancelled."
