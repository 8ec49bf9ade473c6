"""
reader.py: log file discovery and mixed-encoding tolerant line reading.

Public API:
    files = discover_log_files(folder)
    lines = read_log_lines(path)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import chardet

from iislogs_to_excel.constants import LOG_EXTENSION

# Only CR/LF terminate a log line; other Unicode separators may sit inside a URL.
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class LogFile:
    path: Path
    size: int


def discover_log_files(folder: Path, extension: str = LOG_EXTENSION) -> list[LogFile]:
    """Return every log file under ``folder`` (recursively), in a stable order."""
    folder = Path(folder)
    if not folder.is_dir():
        return []
    pattern = f"*{extension}"
    paths = sorted(p for p in folder.rglob(pattern) if p.is_file())
    return [LogFile(path=p, size=p.stat().st_size) for p in paths]


def detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    return result.get("encoding") or "unknown"


def decode_log_bytes(raw: bytes) -> str:
    """
    Decode a log file.

    Strategy:
      1. Whole file as UTF-8 (BOM stripped), the normal case
      2. Otherwise line by line: UTF-8, chardet's guess, latin-1
      3. CP1252 with replace (never crashes)

    Embedded NUL bytes are removed.
    """
    try:
        return raw.decode("utf-8-sig").replace("\x00", "")
    except UnicodeDecodeError:
        pass

    preferred = detect_encoding(raw)
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred, "latin-1"):
            if not enc or enc == "unknown":
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    text = "\n".join(decoded_lines)
    return text[1:] if text.startswith("\ufeff") else text


def split_lines(text: str) -> list[str]:
    lines = _LINE_BREAK_RE.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def read_log_lines(path: Path) -> list[str]:
    return split_lines(decode_log_bytes(Path(path).read_bytes()))


def status_name(path: Path, length: int) -> str:
    """Tail of the file name after its last '-', used in status messages."""
    name = Path(path).name.split("-")[-1]
    return name[-length:] if len(name) > length else name
