"""Normalized error codes and structured error model for the ingestkit-timetable pipeline.

Follows the ingestkit ``E_`` (error) / ``W_`` (warning) convention.  Fatal
conditions are raised as :class:`TimetableIngestException`; everything else is
accumulated as :class:`IngestError` records on the stage results.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the ingestkit-timetable pipeline.

    Codes prefixed with ``E_`` are errors; codes prefixed with ``W_`` are
    non-fatal warnings.  Every member's name equals its string value.
    """

    # Grid source errors
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_PARSE_OPENPYXL_FAIL = "E_PARSE_OPENPYXL_FAIL"

    # Extraction errors (fatal)
    E_GRID_TOO_SHORT = "E_GRID_TOO_SHORT"
    E_NO_TIME_AXIS = "E_NO_TIME_AXIS"

    # Store errors
    E_BACKEND_DB_CONNECT = "E_BACKEND_DB_CONNECT"
    E_BACKEND_DB_WRITE = "E_BACKEND_DB_WRITE"
    E_STORE_REPLACE_FAILED = "E_STORE_REPLACE_FAILED"
    E_COMMIT_NO_SLOTS = "E_COMMIT_NO_SLOTS"

    # Warnings (non-fatal)
    W_PARSER_FALLBACK = "W_PARSER_FALLBACK"
    W_SHEET_SKIPPED_CHART = "W_SHEET_SKIPPED_CHART"
    W_METADATA_NOT_FOUND = "W_METADATA_NOT_FOUND"
    W_BREAK_OVERLAP = "W_BREAK_OVERLAP"
    W_TIME_COLUMN_OVERLAP = "W_TIME_COLUMN_OVERLAP"
    W_LINE_FAILED = "W_LINE_FAILED"
    W_SLOTS_DROPPED = "W_SLOTS_DROPPED"
    W_CROSS_CHECK_MISMATCH = "W_CROSS_CHECK_MISMATCH"
    W_CROSS_CHECK_NO_REFERENCE = "W_CROSS_CHECK_NO_REFERENCE"
    W_DUPLICATE_IMPORT = "W_DUPLICATE_IMPORT"


class IngestError(BaseModel):
    """Structured error with code, message, and context.

    ``row_number`` is the 1-based sheet row the condition refers to, when
    there is one.
    """

    code: ErrorCode
    message: str
    row_number: int | None = None
    stage: str | None = None
    recoverable: bool = False


class TimetableIngestException(Exception):
    """Raisable exception wrapping an :class:`IngestError` data model.

    Used for the fatal conditions that abort an import.  The structured
    error is available as ``.error``.
    """

    def __init__(self, **kwargs: object) -> None:
        self.error = IngestError(**kwargs)  # type: ignore[arg-type]
        super().__init__(self.error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable
