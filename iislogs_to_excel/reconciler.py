"""
Row reconciliation for whitespace-delimited log lines.

IIS writes one request per line with single spaces between fields, but real
files are not that tidy: a URL with a literal space adds a token, and a field
with an embedded line break splits one request across physical lines. The
reconciler turns physical lines into rows of exactly ``schema.field_count``
tokens, or reports the line as unrecoverable.

States:
    READY         no fragment pending; each line is judged on its own
    ACCUMULATING  a short line opened a fragment; following lines extend it
                  (first token glued onto the fragment's last token) until it
                  reaches the field count
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from iislogs_to_excel.constants import TOKEN_SEPARATOR
from iislogs_to_excel.normalizer import is_numeric, remove_invalid_xml_chars
from iislogs_to_excel.schema import DataLine, Schema
from iislogs_to_excel.taxonomy import REPAIRED_ROW, UNRECOVERABLE_ROW, Issue

logger = logging.getLogger(__name__)

READY = "ready"
ACCUMULATING = "accumulating"


@dataclass(frozen=True)
class ReconciledRow:
    tokens: list[str]
    line_number: int
    byte_length: int
    repaired: bool = False


@dataclass
class _Fragment:
    tokens: list[str] = field(default_factory=list)
    line_number: int = 0
    byte_length: int = 0


def tokenize(text: str) -> list[str]:
    return [remove_invalid_xml_chars(token) for token in text.split(TOKEN_SEPARATOR)]


def byte_length(text: str) -> int:
    return len(text.encode("utf-8", errors="replace"))


def merge_excess_token(tokens: list[str], field_count: int, numeric_fields: Iterable[int]) -> list[str] | None:
    """
    Fold a single surplus token back into place.

    The first numeric position holding a non-numeric token marks where the
    row shifted; that token is joined (with a space) onto the cell before it.
    Only one surplus token is handled; anything else returns None.
    """
    if len(tokens) != field_count + 1:
        return None
    for position in sorted(numeric_fields):
        if position < 1 or position >= field_count:
            continue
        if is_numeric(tokens[position]):
            continue
        merged = tokens[: position - 1]
        merged.append(f"{tokens[position - 1]} {tokens[position]}")
        merged.extend(tokens[position + 1 :])
        if not is_numeric(merged[position]):
            return None
        return merged
    return None


class RowReconciler:
    def __init__(self, schema: Schema, source: str = "") -> None:
        self.schema = schema
        self.source = source
        self.field_count = schema.field_count
        self.numeric_fields = schema.numeric_fields
        self.issues: list[Issue] = []
        self.rows_emitted = 0
        self.rows_repaired = 0
        self.rows_skipped = 0
        self._fragment = _Fragment()

    @property
    def state(self) -> str:
        return ACCUMULATING if self._fragment.tokens else READY

    def reconcile(self, lines: Iterable[DataLine]) -> Iterator[ReconciledRow]:
        for line in lines:
            yield from self.feed(line)
        self.finish()

    def feed(self, line: DataLine) -> list[ReconciledRow]:
        tokens = tokenize(line.text)
        size = byte_length(line.text)
        if self._fragment.tokens:
            handled, rows = self._continue_fragment(tokens, line, size)
            if handled:
                return rows
        return self._ready(tokens, line, size)

    def finish(self) -> None:
        if self._fragment.tokens:
            self._drop_fragment("row was still incomplete at end of file")

    # ── READY ──────────────────────────────────────────────────────────────

    def _ready(self, tokens: list[str], line: DataLine, size: int) -> list[ReconciledRow]:
        if len(tokens) == self.field_count:
            return [self._emit(tokens, line.line_number, size)]

        if len(tokens) < self.field_count:
            self._fragment = _Fragment(tokens=tokens, line_number=line.line_number, byte_length=size)
            return []

        repaired = merge_excess_token(tokens, self.field_count, self.numeric_fields)
        if repaired is None:
            self._skip(line.line_number, f"{len(tokens)} values for {self.field_count} fields, repair attempted but failed")
            return []
        self._note_repair(line.line_number, "field containing a space merged back into one cell")
        return [self._emit(repaired, line.line_number, size, repaired=True)]

    # ── ACCUMULATING ───────────────────────────────────────────────────────

    def _continue_fragment(self, tokens: list[str], line: DataLine, size: int) -> tuple[bool, list[ReconciledRow]]:
        fragment = self._fragment
        combined = list(fragment.tokens)
        combined[-1] += tokens[0]
        combined.extend(tokens[1:])
        combined_size = fragment.byte_length + size

        if len(combined) < self.field_count:
            self._fragment = _Fragment(combined, fragment.line_number, combined_size)
            return True, []

        if len(combined) == self.field_count:
            self._fragment = _Fragment()
            self._note_repair(fragment.line_number, "row broken across lines joined back together")
            return True, [self._emit(combined, fragment.line_number, combined_size, repaired=True)]

        if len(tokens) >= self.field_count:
            # The line stands on its own; the fragment before it never completed.
            self._drop_fragment("row broken across lines could not be completed")
            return False, []

        self._fragment = _Fragment()
        repaired = merge_excess_token(combined, self.field_count, self.numeric_fields)
        if repaired is None:
            self._skip(fragment.line_number, "row broken across lines overflowed the field count, repair failed")
            return True, []
        self._note_repair(fragment.line_number, "row broken across lines joined and merged back together")
        return True, [self._emit(repaired, fragment.line_number, combined_size, repaired=True)]

    # ── bookkeeping ────────────────────────────────────────────────────────

    def _emit(self, tokens: list[str], line_number: int, size: int, repaired: bool = False) -> ReconciledRow:
        self.rows_emitted += 1
        if repaired:
            self.rows_repaired += 1
        return ReconciledRow(tokens=tokens, line_number=line_number, byte_length=size, repaired=repaired)

    def _note_repair(self, line_number: int, reason: str) -> None:
        message = f"Broken or invalid data at line {line_number} in file {self.source}, output repair attempted: {reason}."
        logger.warning(message)
        self.issues.append(Issue(kind=REPAIRED_ROW, message=message, line_number=line_number))

    def _skip(self, line_number: int, reason: str) -> None:
        self.rows_skipped += 1
        message = f"Skipped data at line {line_number} in file {self.source}: {reason}."
        logger.warning(message)
        self.issues.append(Issue(kind=UNRECOVERABLE_ROW, message=message, line_number=line_number))

    def _drop_fragment(self, reason: str) -> None:
        line_number = self._fragment.line_number
        self._fragment = _Fragment()
        self._skip(line_number, reason)
