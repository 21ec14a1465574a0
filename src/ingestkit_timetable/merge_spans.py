"""Merge-span resolution: how far a slot extends across the time axis."""

from __future__ import annotations

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.models import MergeSpan, SlotType, TimeAxis, TimeColumn
from ingestkit_timetable.time_axis import add_hours


class MergeSpanResolver:
    """Computes slot end times from the grid's merged rectangles.

    Spans are indexed by their top-left corner; only the anchor cell of a
    merge carries text, so only anchors are ever looked up.
    """

    def __init__(
        self,
        config: TimetableImportConfig,
        merges: list[MergeSpan],
        time_axis: TimeAxis,
    ) -> None:
        self._config = config
        self._anchors = {(m.start_row, m.start_col): m for m in merges}
        self._columns = time_axis.grid_columns()

    def span_at(self, row: int, col: int) -> MergeSpan | None:
        return self._anchors.get((row, col))

    def resolve_end(
        self, row: int, col: int, column: TimeColumn, slot_type: SlotType
    ) -> str:
        """Return the end time of a slot whose text sits at ``(row, col)``.

        A merge anchored at the cell ends at the right-edge column's end
        (when that column is on the time axis).  Without a merge, practicals
        default to ``practical_default_hours`` after the start; everything
        else ends with its own column.
        """
        span = self.span_at(row, col)
        if span is not None:
            edge = self._columns.get(span.end_col)
            return edge.end_time if edge is not None else column.end_time
        if slot_type == SlotType.PRACTICAL:
            return add_hours(column.start_time, self._config.practical_default_hours)
        return column.end_time
