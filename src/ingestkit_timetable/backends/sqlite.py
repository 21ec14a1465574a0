"""SQLite backend for the ScheduleStoreBackend protocol.

Provides a concrete implementation backed by Python's built-in ``sqlite3``
module.  Suitable for local / single-node deployments and testing.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from ingestkit_timetable.errors import ErrorCode, TimetableIngestException

if TYPE_CHECKING:
    from ingestkit_timetable.models import (
        InstructorRecord,
        ResolvedSlot,
        RoomRecord,
        SectionRecord,
        SubjectRecord,
        TimetableRecord,
    )

logger = logging.getLogger("ingestkit_timetable")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS subjects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    credits REAL NOT NULL,
    lectures INTEGER NOT NULL DEFAULT 0,
    tutorials INTEGER NOT NULL DEFAULT 0,
    practicals INTEGER NOT NULL DEFAULT 0,
    subject_type TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS instructors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS rooms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    capacity INTEGER NOT NULL,
    room_type TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS sections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    semester INTEGER NOT NULL,
    program TEXT NOT NULL,
    student_count INTEGER NOT NULL,
    group_type TEXT NOT NULL,
    UNIQUE (name, semester)
);
CREATE TABLE IF NOT EXISTS timetables (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    academic_year TEXT NOT NULL,
    semester INTEGER NOT NULL,
    status TEXT NOT NULL,
    lunch_start TEXT NOT NULL,
    lunch_end TEXT NOT NULL,
    created_by TEXT,
    ingest_key TEXT
);
CREATE TABLE IF NOT EXISTS timetable_slots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timetable_id INTEGER NOT NULL REFERENCES timetables(id),
    subject_id INTEGER NOT NULL REFERENCES subjects(id),
    instructor_id INTEGER REFERENCES instructors(id),
    room_id INTEGER REFERENCES rooms(id),
    section_id INTEGER NOT NULL REFERENCES sections(id),
    day_of_week INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    slot_type TEXT NOT NULL
);
"""


class SQLiteScheduleStore:
    """SQLite-backed schedule store.

    Satisfies :class:`~ingestkit_timetable.protocols.ScheduleStoreBackend`
    via structural subtyping (no inheritance required).

    Parameters
    ----------
    db_path:
        Filesystem path or ``":memory:"`` for an in-memory database.
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        try:
            self._conn = sqlite3.connect(db_path)
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise TimetableIngestException(
                code=ErrorCode.E_BACKEND_DB_CONNECT,
                message=f"Failed to open SQLite database at {db_path}: {exc}",
                stage="store",
                recoverable=False,
            ) from exc

    # ------------------------------------------------------------------
    # Upserts
    # ------------------------------------------------------------------

    def _write_many(self, entity: str, sql: str, params: list[tuple]) -> int:
        try:
            with self._conn:
                self._conn.executemany(sql, params)
        except sqlite3.Error as exc:
            raise TimetableIngestException(
                code=ErrorCode.E_BACKEND_DB_WRITE,
                message=f"Failed to upsert {entity}: {exc}",
                stage="store",
                recoverable=False,
            ) from exc
        return len(params)

    def upsert_subjects(self, subjects: list[SubjectRecord]) -> int:
        return self._write_many(
            "subjects",
            "INSERT INTO subjects "
            "(code, name, credits, lectures, tutorials, practicals, subject_type) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(code) DO UPDATE SET name=excluded.name, "
            "credits=excluded.credits, lectures=excluded.lectures, "
            "tutorials=excluded.tutorials, practicals=excluded.practicals, "
            "subject_type=excluded.subject_type",
            [
                (
                    s.code,
                    s.name,
                    s.credits,
                    s.lectures,
                    s.tutorials,
                    s.practicals,
                    s.subject_type,
                )
                for s in subjects
            ],
        )

    def upsert_instructors(self, instructors: list[InstructorRecord]) -> int:
        return self._write_many(
            "instructors",
            "INSERT INTO instructors (name, email) VALUES (?, ?) "
            "ON CONFLICT(email) DO UPDATE SET name=excluded.name",
            [(i.name, i.email) for i in instructors],
        )

    def upsert_rooms(self, rooms: list[RoomRecord]) -> int:
        return self._write_many(
            "rooms",
            "INSERT INTO rooms (name, capacity, room_type) VALUES (?, ?, ?) "
            "ON CONFLICT(name) DO UPDATE SET room_type=excluded.room_type",
            [(r.name, r.capacity, r.room_type.value) for r in rooms],
        )

    def upsert_sections(self, sections: list[SectionRecord]) -> int:
        return self._write_many(
            "sections",
            "INSERT INTO sections "
            "(name, semester, program, student_count, group_type) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(name, semester) DO UPDATE SET program=excluded.program, "
            "student_count=excluded.student_count, group_type=excluded.group_type",
            [
                (s.name, s.semester, s.program, s.student_count, s.group_type)
                for s in sections
            ],
        )

    # ------------------------------------------------------------------
    # Id lookups
    # ------------------------------------------------------------------

    def _fetch_ids(self, sql: str, params: tuple = ()) -> dict[str, int]:
        cursor = self._conn.execute(sql, params)
        return {row[1]: row[0] for row in cursor.fetchall()}

    def fetch_subject_ids(self) -> dict[str, int]:
        return self._fetch_ids("SELECT id, code FROM subjects")

    def fetch_instructor_ids(self) -> dict[str, int]:
        return self._fetch_ids("SELECT id, name FROM instructors")

    def fetch_room_ids(self) -> dict[str, int]:
        return self._fetch_ids("SELECT id, name FROM rooms")

    def fetch_section_ids(self, semester: int) -> dict[str, int]:
        return self._fetch_ids(
            "SELECT id, name FROM sections WHERE semester = ?", (semester,)
        )

    # ------------------------------------------------------------------
    # Timetable replacement
    # ------------------------------------------------------------------

    def fetch_ingest_key(self, semester: int) -> str | None:
        row = self._conn.execute(
            "SELECT ingest_key FROM timetables WHERE semester = ? "
            "ORDER BY id DESC LIMIT 1",
            (semester,),
        ).fetchone()
        return row[0] if row else None

    def replace_timetable(self, timetable: TimetableRecord) -> int:
        """Delete the semester's timetables (and slots), insert *timetable*.

        Runs in a single transaction; a failure rolls back and raises
        ``E_STORE_REPLACE_FAILED``.
        """
        try:
            with self._conn:
                old_ids = [
                    row[0]
                    for row in self._conn.execute(
                        "SELECT id FROM timetables WHERE semester = ?",
                        (timetable.semester,),
                    )
                ]
                for old_id in old_ids:
                    self._conn.execute(
                        "DELETE FROM timetable_slots WHERE timetable_id = ?",
                        (old_id,),
                    )
                    self._conn.execute(
                        "DELETE FROM timetables WHERE id = ?", (old_id,)
                    )
                cursor = self._conn.execute(
                    "INSERT INTO timetables "
                    "(name, academic_year, semester, status, lunch_start, "
                    "lunch_end, created_by, ingest_key) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        timetable.name,
                        timetable.academic_year,
                        timetable.semester,
                        timetable.status,
                        timetable.lunch_start,
                        timetable.lunch_end,
                        timetable.created_by,
                        timetable.ingest_key,
                    ),
                )
        except sqlite3.Error as exc:
            raise TimetableIngestException(
                code=ErrorCode.E_STORE_REPLACE_FAILED,
                message=(
                    f"Failed to replace timetable for semester "
                    f"{timetable.semester}: {exc}"
                ),
                stage="store",
                recoverable=False,
            ) from exc

        if old_ids:
            logger.info(
                "Replaced %d timetable(s) for semester %d.",
                len(old_ids),
                timetable.semester,
            )
        return int(cursor.lastrowid)

    def insert_slots(self, timetable_id: int, slots: list[ResolvedSlot]) -> int:
        return self._write_many(
            "timetable_slots",
            "INSERT INTO timetable_slots "
            "(timetable_id, subject_id, instructor_id, room_id, section_id, "
            "day_of_week, start_time, end_time, slot_type) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (
                    timetable_id,
                    s.subject_id,
                    s.instructor_id,
                    s.room_id,
                    s.section_id,
                    s.day_of_week,
                    s.start_time,
                    s.end_time,
                    s.slot_type.value,
                )
                for s in slots
            ],
        )

    def fetch_slots(self, timetable_id: int) -> list[tuple]:
        """Return the stored slot rows of one timetable, in insertion order."""
        cursor = self._conn.execute(
            "SELECT subject_id, instructor_id, room_id, section_id, day_of_week, "
            "start_time, end_time, slot_type FROM timetable_slots "
            "WHERE timetable_id = ? ORDER BY id",
            (timetable_id,),
        )
        return cursor.fetchall()

    def get_connection_uri(self) -> str:
        """Return the database connection URI."""
        return f"sqlite:///{self._db_path}"

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        self._conn.close()
