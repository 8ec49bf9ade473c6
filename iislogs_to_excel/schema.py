"""Field-definition handling for W3C extended log files."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

from iislogs_to_excel.constants import (
    COMMENT_MARKER,
    DATE,
    FIELDS_MARKER,
    HOUR,
    HOUR_POSITION,
    NUMBER_FIELDS,
    TIME,
    TOKEN_SEPARATOR,
)
from iislogs_to_excel.errors import EmptyFileError, InvalidSchemaError
from iislogs_to_excel.normalizer import remove_invalid_xml_chars

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataLine:
    line_number: int
    text: str


@dataclass(frozen=True)
class ClassifiedLines:
    fields_line: str
    fields_line_number: int
    data_lines: list[DataLine]


@dataclass(frozen=True)
class Schema:
    fields: tuple[str, ...]
    columns: tuple[str, ...]
    numeric_columns: frozenset[int]

    @property
    def field_count(self) -> int:
        return len(self.fields)

    @property
    def numeric_fields(self) -> frozenset[int]:
        """Numeric positions in the raw token vector (before the hour column exists)."""
        return frozenset(source_index(index) for index in self.numeric_columns)

    def column_index(self, name: str) -> int | None:
        try:
            return self.columns.index(name)
        except ValueError:
            return None


def source_index(column_index: int) -> int:
    return column_index if column_index < HOUR_POSITION else column_index - 1


def classify_lines(lines: list[str], source: str = "") -> ClassifiedLines:
    """
    Drop comment lines, keep the first ``#Fields:`` directive as the header.

    The first surviving line is the field-definition line whether or not it
    carried the marker; everything after it is a candidate data line.
    """
    fields_line: str | None = None
    fields_line_number = 0
    data_lines: list[DataLine] = []

    for line_number, line in enumerate(lines, start=1):
        if line == "":
            continue
        if line.startswith(COMMENT_MARKER):
            if not line.startswith(FIELDS_MARKER):
                continue
            directive = line[len(FIELDS_MARKER):].strip()
            if fields_line is None:
                fields_line = directive
                fields_line_number = line_number
            elif directive != fields_line:
                logger.warning(
                    "Field layout changed at line %d in file %s; later rows keep the first layout.",
                    line_number,
                    source,
                )
            continue
        if fields_line is None:
            fields_line = line
            fields_line_number = line_number
            continue
        data_lines.append(DataLine(line_number=line_number, text=line))

    if fields_line is None:
        raise EmptyFileError(f"{source or 'Log file'} is empty!")
    return ClassifiedLines(fields_line, fields_line_number, data_lines)


def normalise_header(raw_header: str, index: int) -> str:
    base = (remove_invalid_xml_chars(raw_header) or "").strip().lower()
    if not base:
        return f"column_{index}"
    return base


def resolve_schema(fields_line: str, source: str = "") -> Schema:
    seen = Counter({HOUR: 1})
    fields: list[str] = []
    for index, token in enumerate(fields_line.split(TOKEN_SEPARATOR), start=1):
        header = normalise_header(token, index)
        seen[header] += 1
        fields.append(f"{header}_{seen[header]}" if seen[header] > 1 else header)

    if DATE not in fields or TIME not in fields:
        raise InvalidSchemaError(f"{source or 'Log file'} is not a valid IIS log file!")

    columns = list(fields)
    columns.insert(HOUR_POSITION, HOUR)
    numeric_columns = frozenset(columns.index(name) for name in NUMBER_FIELDS if name in columns)
    return Schema(fields=tuple(fields), columns=tuple(columns), numeric_columns=numeric_columns)
