"""Cell sanitizer: text normalization shared by every extraction stage.

Spreadsheet exports of the source timetables routinely carry mojibake from a
UTF-8 -> MacRoman round trip, typographic dashes, and ragged whitespace.
Everything downstream assumes its input went through :func:`sanitize`.
"""

from __future__ import annotations

import datetime as dt
import re

# Mojibake sequences observed in exported grids, mapped to their intended text.
_MOJIBAKE = {
    "–°": "C",
    "‚Äì": "-",
    "‚Äî": "-",
}

_DASHES = re.compile(r"[‐-―−]")
_WHITESPACE = re.compile(r"\s+")
_LINE_BREAK = re.compile(r"\r?\n")


def cell_to_text(value: object) -> str:
    """Convert a raw cell value into text.

    ``datetime.time`` / ``datetime.datetime`` values become ``"HH:MM"``.
    Numeric values in ``[0, 1)`` are treated as Excel fractional-day times
    (``0.5`` -> ``"12:00"``).  ``None`` becomes ``""``.
    """
    if value is None:
        return ""
    if isinstance(value, dt.datetime):
        return f"{value.hour:02d}:{value.minute:02d}"
    if isinstance(value, dt.time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        if 0 < value < 1:
            total_minutes = round(value * 24 * 60)
            return f"{total_minutes // 60}:{total_minutes % 60:02d}"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)


def _repair(text: str) -> str:
    for bad, good in _MOJIBAKE.items():
        text = text.replace(bad, good)
    return _DASHES.sub("-", text)


def sanitize(value: object) -> str:
    """Normalize cell text to a single trimmed line.

    Repairs mojibake, maps typographic dashes to ``-``, collapses every
    whitespace run (line breaks included) to one space.
    """
    text = _repair(cell_to_text(value))
    return _WHITESPACE.sub(" ", text).strip()


def sanitize_cell(value: object) -> str:
    """Like :func:`sanitize` but keeps line breaks.

    Multi-line cells hold one slot per line, so the line structure is
    preserved; each line is collapsed and trimmed, and blank lines dropped.
    """
    text = _repair(cell_to_text(value))
    lines = [_WHITESPACE.sub(" ", line).strip() for line in _LINE_BREAK.split(text)]
    return "\n".join(line for line in lines if line)


def format_excel_time(text: str) -> str:
    """Normalize a header time cell so ``.`` separators read as ``:``."""
    text = text.strip()
    if not text:
        return ""
    if ":" in text or "-" in text or "." in text:
        return text.replace(".", ":")
    return text


def normalize_ignore_token(text: str) -> str:
    """Reduce text to uppercase alphanumerics for ignore-list comparison."""
    return re.sub(r"[^a-zA-Z0-9]", "", text).upper()


def normalize_room(text: str, default: str = "TBA") -> str:
    """Normalize a room token to ``PREFIX-NUMBER`` form.

    ``"lt 101"`` -> ``"LT-101"``, ``"CC3 - 5102"`` -> ``"CC-3-5102"``.
    """
    if not text or text.strip().upper() == default:
        return default
    clean = re.sub(r"\s*-\s*", "-", text.strip(), count=1)
    clean = re.sub(r"\s+", "-", clean).upper()
    return re.sub(r"([A-Z]+)(\d+)", r"\1-\2", clean, count=1)
