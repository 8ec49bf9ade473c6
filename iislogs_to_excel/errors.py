from __future__ import annotations

from iislogs_to_excel.taxonomy import EMPTY_FILE, INVALID_SCHEMA


class LogFormatError(ValueError):
    kind = ""


class EmptyFileError(LogFormatError):
    kind = EMPTY_FILE


class InvalidSchemaError(LogFormatError):
    kind = INVALID_SCHEMA
