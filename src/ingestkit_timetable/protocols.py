"""Backend protocol for the ingestkit-timetable pipeline.

Defines the structural-subtyping interface a schedule store must satisfy.
The protocol is ``@runtime_checkable`` so callers can optionally verify
conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ingestkit_timetable.models import (
        InstructorRecord,
        ResolvedSlot,
        RoomRecord,
        SectionRecord,
        SubjectRecord,
        TimetableRecord,
    )


@runtime_checkable
class ScheduleStoreBackend(Protocol):
    """Interface for schedule stores (e.g. SQLite, PostgreSQL).

    Upserts are keyed by natural key: subjects by code, instructors by
    e-mail, rooms by name, sections by ``(name, semester)``.
    """

    def upsert_subjects(self, subjects: list[SubjectRecord]) -> int:
        """Insert or update subjects by code. Returns count written."""
        ...

    def upsert_instructors(self, instructors: list[InstructorRecord]) -> int:
        """Insert or update instructors by e-mail. Returns count written."""
        ...

    def upsert_rooms(self, rooms: list[RoomRecord]) -> int:
        """Insert or update rooms by name. Returns count written."""
        ...

    def upsert_sections(self, sections: list[SectionRecord]) -> int:
        """Insert or update sections by name and semester. Returns count written."""
        ...

    def fetch_subject_ids(self) -> dict[str, int]:
        """Return ``{subject code: id}``."""
        ...

    def fetch_instructor_ids(self) -> dict[str, int]:
        """Return ``{instructor name: id}``."""
        ...

    def fetch_room_ids(self) -> dict[str, int]:
        """Return ``{room name: id}``."""
        ...

    def fetch_section_ids(self, semester: int) -> dict[str, int]:
        """Return ``{section name: id}`` for one semester."""
        ...

    def fetch_ingest_key(self, semester: int) -> str | None:
        """Return the ingest key stored on the semester's current timetable."""
        ...

    def replace_timetable(self, timetable: TimetableRecord) -> int:
        """Delete the semester's timetables and their slots, insert *timetable*.

        Returns the new timetable id.
        """
        ...

    def insert_slots(self, timetable_id: int, slots: list[ResolvedSlot]) -> int:
        """Bulk-insert resolved slots. Returns count inserted."""
        ...

    def get_connection_uri(self) -> str:
        """Return the store connection URI."""
        ...
