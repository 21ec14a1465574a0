"""Concrete backend implementations for ingestkit-timetable."""

from __future__ import annotations

from ingestkit_timetable.backends.sqlite import SQLiteScheduleStore

__all__ = [
    "SQLiteScheduleStore",
]
