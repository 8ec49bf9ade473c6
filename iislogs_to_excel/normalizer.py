"""Token-level text helpers shared by the schema resolver, reconciler and sheet writer."""

from __future__ import annotations

import re

# Characters allowed in an XML 1.0 document; everything else is dropped.
_INVALID_XML_CHARS_RE = re.compile(
    "[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def remove_invalid_xml_chars(text: str | None) -> str | None:
    if not text:
        return text
    return _INVALID_XML_CHARS_RE.sub("", text)


def is_numeric(text: str | None) -> bool:
    """True when ``text`` is non-empty and made only of ASCII digits."""
    return bool(text) and text.isascii() and text.isdigit()


def valid_number(text: str | None) -> int:
    """Parse an integer cell value; anything unparseable becomes 0."""
    if text is None:
        return 0
    candidate = text.strip()
    if not _INTEGER_RE.fullmatch(candidate):
        return 0
    return int(candidate)


def formatted_size(size: int) -> str:
    if size < 1024:
        return f"{size} Bytes"
    if size < 1024 ** 2:
        return f"{size / 1024:.2f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.2f} MB"
    return f"{size / 1024 ** 3:.2f} GB"
