"""Shared test fixtures for ingestkit-timetable tests.

Provides an in-memory store satisfying the ``ScheduleStoreBackend`` protocol,
config fixtures, a canonical sample timetable grid, and session-scoped .xlsx
file generators.
"""

from __future__ import annotations

import pathlib
import tempfile

import openpyxl
import pytest
from openpyxl.chart import BarChart, Reference

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, TimetableIngestException
from ingestkit_timetable.models import (
    InstructorRecord,
    MergeSpan,
    RawGrid,
    ResolvedSlot,
    RoomRecord,
    SectionRecord,
    SubjectRecord,
    TimetableRecord,
)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_config() -> TimetableImportConfig:
    """Return a TimetableImportConfig with all defaults."""
    return TimetableImportConfig()


@pytest.fixture()
def test_config() -> TimetableImportConfig:
    """``TimetableImportConfig`` pre-set with test-friendly values."""
    return TimetableImportConfig(log_sample_data=True)


# ---------------------------------------------------------------------------
# Mock Backend
# ---------------------------------------------------------------------------


class MockScheduleStore:
    """In-memory store satisfying ``ScheduleStoreBackend`` protocol.

    Entities are kept in dicts keyed by natural key; ids are assigned on
    first insert and never reused.
    """

    def __init__(self) -> None:
        self.subjects: dict[str, tuple[int, SubjectRecord]] = {}
        self.instructors: dict[str, tuple[int, InstructorRecord]] = {}
        self.rooms: dict[str, tuple[int, RoomRecord]] = {}
        self.sections: dict[tuple[str, int], tuple[int, SectionRecord]] = {}
        self.timetables: dict[int, TimetableRecord] = {}
        self.slots: dict[int, list[ResolvedSlot]] = {}
        self.replace_calls: list[TimetableRecord] = []
        self.fail_replace = False
        self._next_id = 1

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id - 1

    def _upsert(self, table: dict, key, record) -> None:
        existing = table.get(key)
        table[key] = (existing[0] if existing else self._id(), record)

    def upsert_subjects(self, subjects: list[SubjectRecord]) -> int:
        for s in subjects:
            self._upsert(self.subjects, s.code, s)
        return len(subjects)

    def upsert_instructors(self, instructors: list[InstructorRecord]) -> int:
        for i in instructors:
            self._upsert(self.instructors, i.email, i)
        return len(instructors)

    def upsert_rooms(self, rooms: list[RoomRecord]) -> int:
        for r in rooms:
            self._upsert(self.rooms, r.name, r)
        return len(rooms)

    def upsert_sections(self, sections: list[SectionRecord]) -> int:
        for s in sections:
            self._upsert(self.sections, (s.name, s.semester), s)
        return len(sections)

    def fetch_subject_ids(self) -> dict[str, int]:
        return {code: sid for code, (sid, _) in self.subjects.items()}

    def fetch_instructor_ids(self) -> dict[str, int]:
        return {rec.name: iid for iid, rec in self.instructors.values()}

    def fetch_room_ids(self) -> dict[str, int]:
        return {name: rid for name, (rid, _) in self.rooms.items()}

    def fetch_section_ids(self, semester: int) -> dict[str, int]:
        return {
            name: sid
            for (name, sem), (sid, _) in self.sections.items()
            if sem == semester
        }

    def fetch_ingest_key(self, semester: int) -> str | None:
        for rec in self.timetables.values():
            if rec.semester == semester:
                return rec.ingest_key
        return None

    def replace_timetable(self, timetable: TimetableRecord) -> int:
        self.replace_calls.append(timetable)
        if self.fail_replace:
            raise TimetableIngestException(
                code=ErrorCode.E_STORE_REPLACE_FAILED,
                message="simulated replace failure",
                stage="store",
            )
        for tid in [t for t, rec in self.timetables.items() if rec.semester == timetable.semester]:
            del self.timetables[tid]
            self.slots.pop(tid, None)
        tid = self._id()
        self.timetables[tid] = timetable
        self.slots[tid] = []
        return tid

    def insert_slots(self, timetable_id: int, slots: list[ResolvedSlot]) -> int:
        self.slots[timetable_id].extend(slots)
        return len(slots)

    def get_connection_uri(self) -> str:
        return "mock://in-memory"


@pytest.fixture()
def mock_store() -> MockScheduleStore:
    """Fresh ``MockScheduleStore`` instance."""
    return MockScheduleStore()


# ---------------------------------------------------------------------------
# Sample timetable grid
# ---------------------------------------------------------------------------

# Time columns: 1=08:50-09:50, 2=09:50-10:50, 3=11:00-12:00, 4=12:00-13:00,
# 5=14:30-15:30, 6=15:30-16:30.  The MON practical at column 5 is merged
# across columns 5-6.
SAMPLE_ROWS: list[list[str]] = [
    ["TIME TABLE - SEM 3", "", "", "", "", "", ""],
    ["DAY", "08:50-09:50", "09:50-10:50", "11:00-12:00", "12:00-1:00", "2:30-3:30", "3:30-4:30"],
    ["MON", "CS101 (L) (LT-101) Sec A", "", "MA201 (T) (CC3-5102)", "", "CS101 (P) (LAB1)", ""],
    ["", "CS101 (L) (LT-101) Sec B", "", "", "", "", ""],
    ["TUE", "CS101 (L) (LT-101) Sec A", "", "", "LUNCH", "", ""],
    ["WED", "CS101 (L) (LT-101) Sec A\nMA201 (L) (LT-102)", "", "", "", "", ""],
    ["", "", "", "", "", "", ""],
    ["Course Code", "", "Course Name", "Faculties", "L-T-P-S", "", ""],
    ["CS101", "", "Intro to Programming", "Dr. A Rao (A), Prof. K Iyer (B)", "4-0-2-0", "", ""],
    ["MA201", "", "Minor Mathematics", "Dr. S Gupta", "3-1-0-0", "", ""],
]

SAMPLE_MERGES = [MergeSpan(start_row=2, start_col=5, end_row=2, end_col=6)]


def make_grid(rows: list[list[str]], merges: list[MergeSpan] | None = None) -> RawGrid:
    """Build a RawGrid from literal rows."""
    return RawGrid(rows=[list(r) for r in rows], merges=list(merges or []), sheet_name="Sheet1")


def cs101_grid() -> RawGrid:
    """The minimal one-cell grid: a single CS101 lecture on Monday."""
    return make_grid(
        [
            ["", "", "", ""],
            ["DAY", "08:50-09:50", "09:50-10:50", "11:00-12:00"],
            ["MON", "CS101 (L) (LT-101) Sec A", "", ""],
        ]
    )


@pytest.fixture()
def sample_grid() -> RawGrid:
    """The canonical sample timetable as a RawGrid."""
    return make_grid(SAMPLE_ROWS, SAMPLE_MERGES)


# ---------------------------------------------------------------------------
# Session-scoped .xlsx Fixture Generators
# ---------------------------------------------------------------------------

_XLSX_TMP_DIR: tempfile.TemporaryDirectory | None = None


def _xlsx_dir() -> pathlib.Path:
    """Lazily create a session-wide temp directory for generated .xlsx files."""
    global _XLSX_TMP_DIR  # noqa: PLW0603
    if _XLSX_TMP_DIR is None:
        _XLSX_TMP_DIR = tempfile.TemporaryDirectory(prefix="ingestkit_test_timetable_")
    return pathlib.Path(_XLSX_TMP_DIR.name)


@pytest.fixture(scope="session")
def sample_timetable_xlsx() -> pathlib.Path:
    """Generate the canonical sample timetable as .xlsx, with the merged practical."""
    path = _xlsx_dir() / "sample_timetable.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Sem3"
    for row in SAMPLE_ROWS:
        ws.append([value if value else None for value in row])
    # Row index 2 / columns 5-6 -> F3:G3
    ws.merge_cells("F3:G3")
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def chart_first_xlsx() -> pathlib.Path:
    """Generate a workbook whose first sheet is chart-only."""
    path = _xlsx_dir() / "chart_first.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    data = wb.active
    data.title = "Grid"
    for row in SAMPLE_ROWS:
        data.append([value if value else None for value in row])
    chart = BarChart()
    chart.add_data(Reference(data, min_col=2, min_row=1, max_row=3))
    wb.create_chartsheet("Chart", 0).add_chart(chart)
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def no_time_axis_xlsx() -> pathlib.Path:
    """Generate a workbook whose header row holds no time ranges."""
    path = _xlsx_dir() / "no_time_axis.xlsx"
    if path.exists():
        return path
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Timetable"])
    ws.append(["DAY", "Morning", "Afternoon"])
    ws.append(["MON", "CS101 (L)", ""])
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def empty_file(tmp_path_factory) -> pathlib.Path:
    """A zero-byte .xlsx path."""
    path = tmp_path_factory.mktemp("empty") / "empty.xlsx"
    path.write_bytes(b"")
    return path


@pytest.fixture(scope="session")
def corrupt_file(tmp_path_factory) -> pathlib.Path:
    """A non-empty file that no reader can parse."""
    path = tmp_path_factory.mktemp("corrupt") / "corrupt.xlsx"
    path.write_bytes(b"this is not a spreadsheet at all")
    return path
