"""Time axis detection for timetable grids.

Scans the designated header row for time-range tokens, builds the ordered
column -> (start, end) map, and injects the fixed break and lunch windows as
synthetic columns.  A grid without a time axis is the one unrecoverable
extraction failure: nothing downstream is meaningful without it.
"""

from __future__ import annotations

import logging
import re

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, IngestError, TimetableIngestException
from ingestkit_timetable.models import RawGrid, TimeAxis, TimeColumn
from ingestkit_timetable.sanitizer import format_excel_time, sanitize

logger = logging.getLogger("ingestkit_timetable")

TIME_RANGE_RE = re.compile(
    r"(\d{1,2}[:.]\d{2})\s*(?:-|to)+\s*(\d{1,2}[:.]\d{2})",
    re.IGNORECASE,
)


def to_24_hour(text: str, afternoon_hours: list[int]) -> str:
    """Convert an ``H:MM`` / ``H.MM`` token to zero-padded 24-hour ``HH:MM``.

    Hours listed in *afternoon_hours* are read as PM and shifted by 12;
    every other hour passes through unchanged.
    """
    hour_text, minute_text = re.split(r"[:.]", text.strip(), maxsplit=1)
    hour = int(hour_text)
    if hour in afternoon_hours:
        hour += 12
    return f"{hour:02d}:{int(minute_text):02d}"


def add_hours(time_text: str, hours: int) -> str:
    """Add whole hours to an ``HH:MM`` string."""
    hour_text, minute_text = time_text.split(":")
    return f"{int(hour_text) + hours:02d}:{int(minute_text):02d}"


class TimeAxisDetector:
    """Builds the :class:`TimeAxis` of a grid from its header row."""

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    def detect(self, grid: RawGrid) -> tuple[TimeAxis, list[IngestError]]:
        """Detect the time axis of *grid*.

        Returns
        -------
        tuple[TimeAxis, list[IngestError]]
            The axis (declared columns plus synthetic break/lunch columns,
            sorted by start time) and any overlap warnings.

        Raises
        ------
        TimetableIngestException
            ``E_GRID_TOO_SHORT`` when the grid has no header row at
            ``time_row_index``; ``E_NO_TIME_AXIS`` when no header cell holds
            a time range.
        """
        cfg = self._config
        row_index = cfg.time_row_index
        warnings: list[IngestError] = []

        if len(grid.rows) <= row_index:
            logger.error(
                "Grid has %d rows; time header expected at row %d.",
                len(grid.rows),
                row_index + 1,
            )
            raise TimetableIngestException(
                code=ErrorCode.E_GRID_TOO_SHORT,
                message=(
                    f"Grid has {len(grid.rows)} row(s); the time header is "
                    f"expected at row {row_index + 1}."
                ),
                stage="time_axis",
                recoverable=False,
            )

        declared: list[TimeColumn] = []
        for col_index, raw in enumerate(grid.rows[row_index]):
            text = format_excel_time(sanitize(raw))
            match = TIME_RANGE_RE.search(text)
            if not match:
                continue
            start = to_24_hour(match.group(1), cfg.afternoon_hours)
            end = to_24_hour(match.group(2), cfg.afternoon_hours)
            logger.debug("Col %d: found time %s-%s", col_index, start, end)
            declared.append(
                TimeColumn(column_index=col_index, start_time=start, end_time=end)
            )

        if not declared:
            logger.error("No time ranges found in row %d.", row_index + 1)
            raise TimetableIngestException(
                code=ErrorCode.E_NO_TIME_AXIS,
                message=f"No time ranges found in row {row_index + 1}.",
                row_number=row_index + 1,
                stage="time_axis",
                recoverable=False,
            )

        for i, first in enumerate(declared):
            for second in declared[i + 1:]:
                if first.overlaps(second):
                    warnings.append(
                        IngestError(
                            code=ErrorCode.W_TIME_COLUMN_OVERLAP,
                            message=(
                                f"Columns {first.column_index} "
                                f"({first.start_time}-{first.end_time}) and "
                                f"{second.column_index} "
                                f"({second.start_time}-{second.end_time}) overlap."
                            ),
                            row_number=row_index + 1,
                            stage="time_axis",
                            recoverable=True,
                        )
                    )

        columns = list(declared)
        for label, (start, end) in (
            ("break", cfg.break_window),
            ("lunch", cfg.lunch_window),
        ):
            synthetic = TimeColumn(
                column_index=None,
                start_time=start,
                end_time=end,
                is_break_or_lunch=True,
            )
            clash = next((c for c in declared if c.overlaps(synthetic)), None)
            if clash is not None:
                warnings.append(
                    IngestError(
                        code=ErrorCode.W_BREAK_OVERLAP,
                        message=(
                            f"Fixed {label} window {start}-{end} overlaps column "
                            f"{clash.column_index} ({clash.start_time}-"
                            f"{clash.end_time}); {label} column omitted."
                        ),
                        row_number=row_index + 1,
                        stage="time_axis",
                        recoverable=True,
                    )
                )
                continue
            columns.append(synthetic)

        columns.sort(key=lambda c: (c.start_time, c.end_time))

        for w in warnings:
            logger.warning("Time axis: %s", w.message)
        logger.info(
            "Time axis: %d time column(s) in row %d, %d synthetic.",
            len(declared),
            row_index + 1,
            len(columns) - len(declared),
        )
        return TimeAxis(row_index=row_index, columns=columns), warnings
