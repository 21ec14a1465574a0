"""Heuristic slot parser: one line of cell text -> subject/type/room/section.

The parser is an ordered, destructive pipeline.  Each stage looks for its
marker in the remaining text, returns the matched fragment, and strips it
before the next stage runs.  Later stages rely on earlier ones having
removed their matches (the section marker regex would otherwise fire
inside a room token), so the order of :attr:`HeuristicSlotParser.stages`
is part of the contract.
"""

from __future__ import annotations

import re
from typing import Callable

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.models import ParsedLine, SlotType
from ingestkit_timetable.sanitizer import normalize_ignore_token, normalize_room, sanitize

Stage = Callable[[str], tuple[str | None, str]]

_TYPE_RE = re.compile(r"\((L|T|P)\)", re.IGNORECASE)
_TRAILING_ROOM_RE = re.compile(r"\(([A-Z0-9\s-]{3,})\)$")
_SECTION_RE = re.compile(r"(?:Sec|Group)\.?\s*([A-Z0-9-/]{1,5})", re.IGNORECASE)
_SPACED_DASH_RE = re.compile(r"\s+-\s+")
_LEADING_NOISE_RE = re.compile(r"^[-:\s\d]+")

# Two or more capitals right after a closing parenthesis start a new slot.
_COMBINED_SLOT_RE = re.compile(r"(\))(\s+)([A-Z]{2,})")

_TYPE_CODES = {
    "L": SlotType.LECTURE,
    "T": SlotType.TUTORIAL,
    "P": SlotType.PRACTICAL,
}


def split_combined_slots(text: str) -> list[str]:
    """Split cell text into one line per slot.

    Existing line breaks are kept, and a break is inserted wherever a closing
    parenthesis is followed by an uppercase subject code
    (``"CS101 (L) MA201 (T)"`` -> two lines).
    """
    text = _COMBINED_SLOT_RE.sub(r"\1\n\3", text)
    return [line for line in re.split(r"\r?\n", text) if line.strip()]


class HeuristicSlotParser:
    """Parses a single sanitized line into a :class:`ParsedLine`."""

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config
        self._ignore_exact = {normalize_ignore_token(t) for t in config.ignore_exact}
        self._keyword_res = [
            re.compile(re.escape(k), re.IGNORECASE) for k in config.ignore_keywords
        ]
        self._room_re = re.compile(
            rf"\(({config.room_code_pattern})\)", re.IGNORECASE
        )
        self.stages: tuple[tuple[str, Stage], ...] = (
            ("slot_type", self._extract_type),
            ("room", self._extract_room),
            ("section", self._extract_section),
        )

    # ------------------------------------------------------------------
    # Pre-processing
    # ------------------------------------------------------------------

    def strip_noise(self, line: str) -> str:
        """Remove ignore keywords and leading digit/dash/colon noise."""
        clean = sanitize(line)
        for keyword_re in self._keyword_res:
            clean = keyword_re.sub("", clean)
        return _LEADING_NOISE_RE.sub("", clean).strip()

    def is_ignorable(self, text: str) -> bool:
        return normalize_ignore_token(text) in self._ignore_exact

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _extract_type(self, text: str) -> tuple[str | None, str]:
        match = _TYPE_RE.search(text)
        if not match:
            return None, text
        return match.group(1).upper(), text.replace(match.group(0), " ", 1)

    def _extract_room(self, text: str) -> tuple[str | None, str]:
        match = self._room_re.search(text) or _TRAILING_ROOM_RE.search(text.rstrip())
        if not match:
            return None, text
        room = normalize_room(match.group(1), self._config.default_room)
        return room, text.replace(match.group(0), " ", 1)

    def _extract_section(self, text: str) -> tuple[str | None, str]:
        match = _SECTION_RE.search(text)
        if not match:
            return None, text
        return f"Sec {match.group(1)}", text.replace(match.group(0), " ", 1)

    @staticmethod
    def _residual_subject(text: str) -> str:
        subject = _SPACED_DASH_RE.sub(" ", text)
        subject = subject.replace("(", "").replace(")", "")
        return re.sub(r"\s+", " ", subject).strip()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, line: str) -> ParsedLine:
        """Run the stage pipeline over one line of text."""
        text = sanitize(line)

        if self.is_ignorable(text):
            return ParsedLine(skipped=True, reason=f"Ignored garbage: {text}")

        fragments: dict[str, str | None] = {}
        for name, stage in self.stages:
            fragment, text = stage(text)
            fragments[name] = fragment

        subject = self._residual_subject(text)
        if len(subject) < 2:
            return ParsedLine(skipped=True, reason="Subject empty after cleanup")

        type_code = fragments["slot_type"]
        return ParsedLine(
            subject=subject,
            slot_type=_TYPE_CODES[type_code] if type_code else SlotType.LECTURE,
            room=fragments["room"] or self._config.default_room,
            section=fragments["section"] or self._config.default_section,
        )
