"""Pydantic data models, enumerations, and stage artifacts for ingestkit-timetable.

This module defines the data model shared by every stage of the extraction
engine: the raw grid handed in by the grid source, the time axis and
metadata recovered from it, the per-line extraction records, the
cross-check report, and the upsert/resolution payloads exchanged with the
schedule store.
"""

from __future__ import annotations

import hashlib
from enum import Enum

from pydantic import BaseModel, field_validator

from ingestkit_timetable.errors import IngestError
from ingestkit_timetable.sanitizer import cell_to_text


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SlotType(str, Enum):
    """Kind of teaching activity, from the ``(L)``/``(T)``/``(P)`` marker."""

    LECTURE = "Lecture"
    TUTORIAL = "Tutorial"
    PRACTICAL = "Practical"


class DiagnosticStatus(str, Enum):
    """Outcome of examining one line of cell text."""

    PARSED = "Parsed"
    SKIPPED = "Skipped"
    FAILED = "Failed"


class RoomType(str, Enum):
    """Room usage inferred from the slots that reference it."""

    LECTURE = "Lecture"
    LAB = "Lab"


class ParserUsed(str, Enum):
    """Which reader produced the raw grid."""

    OPENPYXL = "openpyxl"
    PANDAS_FALLBACK = "pandas_fallback"


# ---------------------------------------------------------------------------
# Idempotency
# ---------------------------------------------------------------------------


class IngestKey(BaseModel):
    """Deterministic key for deduplicating import runs.

    Combines content hash, source URI, parser version, and the target
    partition (semester) into a single SHA-256 digest.
    """

    content_hash: str
    source_uri: str
    parser_version: str
    partition: str | None = None

    @property
    def key(self) -> str:
        """Deterministic string key for dedup lookups."""
        parts = [self.content_hash, self.source_uri, self.parser_version]
        if self.partition:
            parts.append(self.partition)
        return hashlib.sha256("|".join(parts).encode()).hexdigest()


# ---------------------------------------------------------------------------
# Grid input
# ---------------------------------------------------------------------------


class MergeSpan(BaseModel):
    """A merged rectangle of the grid (0-based, inclusive bounds)."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int


class RawGrid(BaseModel):
    """Cell text of one sheet plus its merged rectangles.

    Rows may be built from raw cell values (``None``, fractional-day floats,
    ``datetime.time``); each is converted with :func:`cell_to_text`.
    """

    rows: list[list[str]]
    merges: list[MergeSpan] = []
    sheet_name: str | None = None
    parser_used: ParserUsed = ParserUsed.OPENPYXL

    @field_validator("rows", mode="before")
    @classmethod
    def _cells_to_text(cls, rows: object) -> object:
        if not isinstance(rows, (list, tuple)):
            return rows
        return [
            [cell_to_text(v) for v in row] if isinstance(row, (list, tuple)) else row
            for row in rows
        ]

    def cell(self, row: int, col: int) -> str:
        """Return the cell text, or ``""`` outside the ragged row bounds."""
        if row < 0 or row >= len(self.rows):
            return ""
        values = self.rows[row]
        if col < 0 or col >= len(values):
            return ""
        return values[col]


# ---------------------------------------------------------------------------
# Time axis
# ---------------------------------------------------------------------------


class TimeColumn(BaseModel):
    """One period of the time axis.

    ``column_index`` is ``None`` for the synthetic break/lunch columns, which
    never come from cell content.
    """

    column_index: int | None
    start_time: str
    end_time: str
    is_break_or_lunch: bool = False

    def overlaps(self, other: TimeColumn) -> bool:
        return self.start_time < other.end_time and other.start_time < self.end_time


class TimeAxis(BaseModel):
    """The ordered time columns of a grid (sorted by start time)."""

    row_index: int
    columns: list[TimeColumn]

    def grid_columns(self) -> dict[int, TimeColumn]:
        """Map grid column index to its time column, synthetic columns excluded."""
        return {
            c.column_index: c
            for c in self.columns
            if c.column_index is not None
        }


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


class SubjectMetadata(BaseModel):
    """Declared facts about one subject from the metadata block."""

    code: str
    display_name: str | None = None
    lecture_hours: int = 0
    tutorial_hours: int = 0
    practical_hours: int = 0
    self_study_hours: int = 0
    credits: float = 4
    has_credit_structure: bool = False
    is_minor: bool = False


class FacultyDiagnostic(BaseModel):
    """How one metadata row's faculty string was interpreted."""

    code: str
    name: str
    faculty_string: str
    parsed: str


class MetadataBlock(BaseModel):
    """Everything recovered from the auxiliary subject/faculty table."""

    header_row_index: int | None = None
    code_col: int
    name_col: int
    faculty_col: int
    credit_col: int | None = None
    subjects: dict[str, SubjectMetadata] = {}
    faculty_map: dict[str, dict[str, str]] = {}
    faculty_diagnostics: list[FacultyDiagnostic] = []

    @property
    def found(self) -> bool:
        return self.header_row_index is not None


# ---------------------------------------------------------------------------
# Extraction records
# ---------------------------------------------------------------------------


class ParsedLine(BaseModel):
    """Output of the heuristic slot parser for one line of text."""

    subject: str | None = None
    slot_type: SlotType = SlotType.LECTURE
    section: str = "All"
    room: str = "TBA"
    skipped: bool = False
    reason: str | None = None


class ExtractedSlot(BaseModel):
    """One scheduled occurrence recovered from one cell-line."""

    day: str
    start_time: str
    end_time: str
    subject_code: str
    slot_type: SlotType
    section: str
    room: str
    instructor_name: str
    raw_source_text: str
    is_minor: bool = False


class DiagnosticRecord(BaseModel):
    """Audit-trail entry for one examined cell-line."""

    row_number: int
    column_index: int | None = None
    raw_text: str
    status: DiagnosticStatus
    reason: str | None = None


class CrossCheckRow(BaseModel):
    """Parsed occurrence counts of a subject against its declared structure.

    ``is_consistent`` is ``None`` when the subject has no declared credit
    structure to compare against.
    """

    subject_code: str
    parsed_lecture_count: int
    parsed_tutorial_count: int
    parsed_practical_count: int
    declared: SubjectMetadata | None = None
    is_consistent: bool | None = None

    @property
    def has_reference(self) -> bool:
        return self.is_consistent is not None


# ---------------------------------------------------------------------------
# Store payloads
# ---------------------------------------------------------------------------


class SubjectRecord(BaseModel):
    code: str
    name: str
    credits: float
    lectures: int = 0
    tutorials: int = 0
    practicals: int = 0
    subject_type: str = "Core"


class InstructorRecord(BaseModel):
    name: str
    email: str


class RoomRecord(BaseModel):
    name: str
    capacity: int
    room_type: RoomType


class SectionRecord(BaseModel):
    name: str
    semester: int
    program: str
    student_count: int
    group_type: str


class TimetableRecord(BaseModel):
    """Header row of one imported timetable (the partition's single owner)."""

    name: str
    academic_year: str
    semester: int
    status: str
    lunch_start: str
    lunch_end: str
    created_by: str | None = None
    ingest_key: str | None = None


class NormalizedEntitySet(BaseModel):
    """Deduplicated entities referenced by a slot list, ready for upsert."""

    subjects: list[SubjectRecord] = []
    instructors: list[InstructorRecord] = []
    rooms: list[RoomRecord] = []
    sections: list[SectionRecord] = []


class ResolvedSlot(BaseModel):
    """An extracted slot with every reference replaced by a store id."""

    subject_id: int
    instructor_id: int | None
    room_id: int | None
    section_id: int
    day_of_week: int
    start_time: str
    end_time: str
    slot_type: SlotType


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------


class ExtractionResult(BaseModel):
    """Everything the review surface needs before commit."""

    source: str | None = None
    ingest_key: str | None = None
    ingest_run_id: str
    time_axis: TimeAxis
    metadata: MetadataBlock
    slots: list[ExtractedSlot]
    diagnostics: list[DiagnosticRecord]
    cross_check: list[CrossCheckRow] = []

    errors: list[str] = []
    warnings: list[str] = []
    error_details: list[IngestError] = []

    processing_time_seconds: float = 0.0

    def diagnostics_with_status(
        self, status: DiagnosticStatus
    ) -> list[DiagnosticRecord]:
        return [d for d in self.diagnostics if d.status == status]


class CommitResult(BaseModel):
    """Outcome of writing a reviewed slot list to the schedule store."""

    timetable_id: int | None = None
    semester: int
    slots_inserted: int
    slots_dropped: int
    entities: NormalizedEntitySet
    cross_check: list[CrossCheckRow] = []

    errors: list[str] = []
    warnings: list[str] = []
    error_details: list[IngestError] = []

    processing_time_seconds: float = 0.0
