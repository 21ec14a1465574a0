"""Configuration model for the ingestkit-timetable pipeline.

Provides ``TimetableImportConfig`` with every layout constant and store
default the extraction engine relies on.  Supports loading overrides from
YAML or JSON files via the ``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel


class TimetableImportConfig(BaseModel):
    """All tunable parameters with sensible defaults.

    The defaults describe the layout convention the heuristics are tuned to:
    day labels in the first column, time ranges in the second row, and an
    auxiliary "Course Code ... Faculties" table below the grid.  Override
    individual values via constructor kwargs or load a complete config from
    a file with ``TimetableImportConfig.from_file(path)``.
    """

    # --- Identity ---
    parser_version: str = "ingestkit_timetable:1.0.0"

    # --- Grid layout ---
    time_row_index: int = 1
    day_column_index: int = 0
    day_labels: list[str] = ["MON", "TUE", "WED", "THU", "FRI"]

    # --- Time axis ---
    afternoon_hours: list[int] = [1, 2, 3, 4, 5, 6, 7]
    break_window: tuple[str, str] = ("10:50", "11:00")
    lunch_window: tuple[str, str] = ("13:00", "14:30")
    practical_default_hours: int = 2

    # --- Metadata block ---
    metadata_code_column: int = 0
    metadata_name_column: int = 2
    metadata_faculty_column: int = 3
    metadata_credit_column: int | None = None
    default_credits: int = 4
    unknown_instructor: str = "Unknown"

    # --- Slot parsing ---
    ignore_exact: list[str] = [
        "LUNCH", "BREAK", "RECESS", "TEA", "TIME TABLE", "DEPARTMENT",
    ]
    ignore_keywords: list[str] = [
        "BASKET", "MDM", "HSMC", "OPEN ELECTIVE", "PROGRAM ELECTIVE",
        "MINORS", "MINOR",
    ]
    room_code_pattern: str = r"(?:CC[1-3]|LT)\s*-?\s*\d{3,4}"
    default_room: str = "TBA"
    default_section: str = "All"

    # --- Cross-check ---
    practical_block_hours: int = 2

    # --- Store defaults ---
    instructor_email_domain: str = "iiita.ac.in"
    default_room_capacity: int = 60
    default_program: str = "B.Tech"
    default_student_count: int = 60
    default_group_type: str = "Core"
    default_subject_type: str = "Core"
    academic_year: str = "2025-26"
    timetable_status: str = "published"

    # --- General ---
    max_rows_in_memory: int = 10_000

    # --- Logging / PII safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> TimetableImportConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml

            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
