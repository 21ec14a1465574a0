"""Metadata block discovery and parsing.

Timetable sheets carry an auxiliary table below the grid listing every
subject with its display name, declared credit structure (``L-T-P-S``), and a
free-text faculty roster such as ``"Dr. A Rao (A, B), Prof. K Iyer (C)"``.
:class:`MetadataBlockLocator` finds that table; :class:`MetadataParser` turns
its rows into the subject and faculty-expertise maps the slot assembler and
cross-check engine consume.
"""

from __future__ import annotations

import logging
import re

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.models import (
    FacultyDiagnostic,
    MetadataBlock,
    RawGrid,
    SubjectMetadata,
)
from ingestkit_timetable.sanitizer import sanitize

logger = logging.getLogger("ingestkit_timetable")

DEFAULT_KEY = "default"

_CODE_HEADERS = ("coursecode",)
_NAME_HEADERS = ("coursename",)
_CREDIT_HEADERS = ("l-t-p", "ltp", "credit", "structure")
_FACULTY_HEADERS = ("faculties", "faculty")

# Commas outside parentheses separate faculty entries.
_FACULTY_SPLIT_RE = re.compile(r",(?![^(]*\))")
_FACULTY_ENTRY_RE = re.compile(r"([^(]+)\(([^)]+)\)")
_SECTION_PREFIX_RE = re.compile(r"^sec\.?\s*", re.IGNORECASE)
_CREDIT_SPLIT_RE = re.compile(r"\s*[-‐-―−]\s*")


def _header_key(text: str) -> str:
    return re.sub(r"\s+", "", sanitize(text).lower())


class MetadataBlockLocator:
    """Finds the metadata header row and resolves its column positions."""

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    def locate(self, grid: RawGrid) -> MetadataBlock:
        """Return an empty :class:`MetadataBlock` with resolved columns.

        ``header_row_index`` is ``None`` when no row mentions both
        "course code" and "faculties"; the configured default columns are
        kept in that case.
        """
        cfg = self._config
        block = MetadataBlock(
            code_col=cfg.metadata_code_column,
            name_col=cfg.metadata_name_column,
            faculty_col=cfg.metadata_faculty_column,
            credit_col=cfg.metadata_credit_column,
        )

        for row_index, row in enumerate(grid.rows):
            joined = " ".join(sanitize(c).lower() for c in row)
            if "course code" not in joined or "faculties" not in joined:
                continue

            block.header_row_index = row_index
            for col_index, cell in enumerate(row):
                key = _header_key(cell)
                if not key:
                    continue
                if any(h in key for h in _CODE_HEADERS):
                    block.code_col = col_index
                elif any(h in key for h in _NAME_HEADERS):
                    block.name_col = col_index
                elif any(h in key for h in _FACULTY_HEADERS):
                    block.faculty_col = col_index
                elif any(h in key for h in _CREDIT_HEADERS):
                    block.credit_col = col_index

            logger.info(
                "Found metadata header at row %d (code=%d name=%d "
                "credit=%s faculty=%d).",
                row_index + 1,
                block.code_col,
                block.name_col,
                block.credit_col,
                block.faculty_col,
            )
            break

        return block


def parse_credit_structure(text: str) -> tuple[int, int, int, int]:
    """Split ``"3-1-0-0"`` into ``(L, T, P, S)``; missing or bad parts are 0."""
    hours = [0, 0, 0, 0]
    parts = _CREDIT_SPLIT_RE.split(sanitize(text)) if text else []
    for i, part in enumerate(parts[:4]):
        try:
            hours[i] = int(part.strip())
        except ValueError:
            hours[i] = 0
    return hours[0], hours[1], hours[2], hours[3]


def parse_faculty_string(
    raw: str, unknown: str = "Unknown"
) -> tuple[dict[str, str], list[str]]:
    """Parse a free-text faculty roster into a section -> instructor map.

    Returns the map (always containing a ``"default"`` key) and a list of
    human-readable fragments describing what was recognised.
    """
    profs: dict[str, str] = {DEFAULT_KEY: unknown}
    parsed: list[str] = []

    if not raw or raw.lower() == "unknown":
        return profs, parsed

    parts = [p.strip() for p in _FACULTY_SPLIT_RE.split(raw)]
    parts = [p for p in parts if p]
    sole_part = len(parts) == 1

    for part in parts:
        match = _FACULTY_ENTRY_RE.search(part)
        if match:
            name = match.group(1).strip()
            sections = [s.strip() for s in re.split(r"[,&]", match.group(2))]
            sections = [s for s in sections if s]
            for section in sections:
                key = _SECTION_PREFIX_RE.sub("", section).strip()
                profs[key] = name
                profs[f"Sec {key}"] = name
            parsed.append(", ".join(f"{s}: {name}" for s in sections))
            if sole_part:
                profs[DEFAULT_KEY] = name
        elif sole_part:
            profs[DEFAULT_KEY] = part
            parsed.append(f"All: {part}")
        else:
            # Several entries with one unqualified name: no single default.
            parsed.append(f"Unassigned: {part}")

    return profs, parsed


class MetadataParser:
    """Builds subject, credit-structure, and faculty maps from the block rows."""

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    def parse(self, grid: RawGrid, block: MetadataBlock) -> MetadataBlock:
        """Populate *block* from the rows after its header.

        Returns the same block for chaining.  A block that was not located
        is returned unchanged.
        """
        if block.header_row_index is None:
            return block

        cfg = self._config
        has_credit_column = block.credit_col is not None

        for row_index in range(block.header_row_index + 1, len(grid.rows)):
            code = sanitize(grid.cell(row_index, block.code_col))
            if not code:
                continue

            name = sanitize(grid.cell(row_index, block.name_col))
            raw_faculty = sanitize(grid.cell(row_index, block.faculty_col))

            subject = SubjectMetadata(
                code=code,
                display_name=name or None,
                credits=cfg.default_credits,
                is_minor="minor" in name.lower(),
            )
            if has_credit_column:
                credit_text = sanitize(grid.cell(row_index, block.credit_col))
                lec, tut, prac, self_study = parse_credit_structure(credit_text)
                subject.lecture_hours = lec
                subject.tutorial_hours = tut
                subject.practical_hours = prac
                subject.self_study_hours = self_study
                subject.has_credit_structure = bool(credit_text)
                if subject.has_credit_structure:
                    subject.credits = lec + tut + prac / 2

            profs, parsed = parse_faculty_string(raw_faculty, cfg.unknown_instructor)
            block.subjects[code] = subject
            block.faculty_map[code] = profs
            block.faculty_diagnostics.append(
                FacultyDiagnostic(
                    code=code,
                    name=name,
                    faculty_string=raw_faculty or "Empty",
                    parsed=" | ".join(parsed) if parsed else f"Default: {profs[DEFAULT_KEY]}",
                )
            )
            if cfg.log_sample_data:
                logger.debug("Metadata row %d: %s -> %s", row_index + 1, code, profs)

        logger.info(
            "Parsed metadata for %d subject(s) (credit structure column: %s).",
            len(block.subjects),
            "yes" if has_credit_column else "no",
        )
        return block
