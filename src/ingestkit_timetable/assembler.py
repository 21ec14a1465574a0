"""Slot assembly: walks the grid body and emits slots plus an audit trail.

For every day row and time column, each line of cell text is cleaned, run
through the :class:`~ingestkit_timetable.slot_parser.HeuristicSlotParser`,
attributed to an instructor via the faculty map, and extended across any
merged span.  Every examined line leaves exactly one
:class:`DiagnosticRecord`, whether it produced a slot or not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, IngestError
from ingestkit_timetable.merge_spans import MergeSpanResolver
from ingestkit_timetable.metadata import DEFAULT_KEY
from ingestkit_timetable.models import (
    DiagnosticRecord,
    DiagnosticStatus,
    ExtractedSlot,
    MetadataBlock,
    RawGrid,
    TimeAxis,
    TimeColumn,
)
from ingestkit_timetable.sanitizer import sanitize, sanitize_cell
from ingestkit_timetable.slot_parser import HeuristicSlotParser, split_combined_slots

logger = logging.getLogger("ingestkit_timetable")


@dataclass
class ImportContext:
    """Per-run state threaded through the extraction stages.

    The sentinel instructor and section exist from the start of the run so
    that every lookup has somewhere to fall through to.
    """

    time_axis: TimeAxis
    metadata: MetadataBlock
    unknown_instructor: str = "Unknown"
    default_section: str = "All"
    slots: list[ExtractedSlot] = field(default_factory=list)
    diagnostics: list[DiagnosticRecord] = field(default_factory=list)
    warnings: list[IngestError] = field(default_factory=list)

    def instructor_for(self, subject: str, section: str) -> str:
        """Look up the instructor for *subject* taught to *section*.

        Tries the full section token (``"Sec A"``), then the bare token
        (``"A"``), then the subject's default.
        """
        profs = self.metadata.faculty_map.get(subject)
        if not profs:
            return self.unknown_instructor
        short = section.replace("Sec ", "", 1).strip()
        return (
            profs.get(section)
            or profs.get(short)
            or profs.get(DEFAULT_KEY)
            or self.unknown_instructor
        )

    def is_minor(self, subject: str) -> bool:
        meta = self.metadata.subjects.get(subject)
        return meta.is_minor if meta is not None else False


class SlotAssembler:
    """Builds :class:`ExtractedSlot` records from the body of a grid."""

    def __init__(
        self,
        config: TimetableImportConfig,
        parser: HeuristicSlotParser | None = None,
    ) -> None:
        self._config = config
        self._parser = parser or HeuristicSlotParser(config)

    def new_context(self, time_axis: TimeAxis, metadata: MetadataBlock) -> ImportContext:
        return ImportContext(
            time_axis=time_axis,
            metadata=metadata,
            unknown_instructor=self._config.unknown_instructor,
            default_section=self._config.default_section,
        )

    def _day_label(self, raw: str) -> str | None:
        text = sanitize(raw).upper()
        for label in self._config.day_labels:
            if label.upper() in text:
                return label
        return None

    def assemble(self, grid: RawGrid, ctx: ImportContext) -> ImportContext:
        """Scan the rows between the time header and the metadata block.

        Day labels carry forward: a row with an empty day cell belongs to
        the most recent labelled day.  Rows before the first label are
        ignored.  Returns *ctx* with slots, diagnostics, and warnings
        appended.
        """
        cfg = self._config
        end_row = (
            ctx.metadata.header_row_index
            if ctx.metadata.header_row_index is not None
            else len(grid.rows)
        )
        columns = sorted(ctx.time_axis.grid_columns().items())
        resolver = MergeSpanResolver(cfg, grid.merges, ctx.time_axis)

        current_day: str | None = None
        for row_index in range(ctx.time_axis.row_index + 1, end_row):
            label = self._day_label(grid.cell(row_index, cfg.day_column_index))
            if label is not None:
                current_day = label
            if current_day is None:
                continue

            for col_index, column in columns:
                cell_text = sanitize_cell(grid.cell(row_index, col_index))
                if not cell_text:
                    continue
                for line in split_combined_slots(cell_text):
                    self._assemble_line(
                        ctx, resolver, row_index, col_index, column, current_day, line
                    )

        parsed = len(ctx.slots)
        skipped = sum(
            1 for d in ctx.diagnostics if d.status == DiagnosticStatus.SKIPPED
        )
        failed = sum(1 for d in ctx.diagnostics if d.status == DiagnosticStatus.FAILED)
        logger.info(
            "Assembled %d slot(s); %d line(s) skipped, %d failed.",
            parsed,
            skipped,
            failed,
        )
        return ctx

    def _assemble_line(
        self,
        ctx: ImportContext,
        resolver: MergeSpanResolver,
        row_index: int,
        col_index: int,
        column: TimeColumn,
        day: str,
        line: str,
    ) -> None:
        row_number = row_index + 1
        clean = self._parser.strip_noise(line)

        def record(status: DiagnosticStatus, reason: str | None = None) -> None:
            ctx.diagnostics.append(
                DiagnosticRecord(
                    row_number=row_number,
                    column_index=col_index,
                    raw_text=clean or sanitize(line),
                    status=status,
                    reason=reason,
                )
            )

        if len(clean) < 2:
            record(DiagnosticStatus.SKIPPED, "Empty after removing keywords")
            return

        try:
            result = self._parser.parse(clean)
            if result.skipped or result.subject is None:
                record(DiagnosticStatus.SKIPPED, result.reason)
                return

            end_time = resolver.resolve_end(
                row_index, col_index, column, result.slot_type
            )
            slot = ExtractedSlot(
                day=day,
                start_time=column.start_time,
                end_time=end_time,
                subject_code=result.subject,
                slot_type=result.slot_type,
                section=result.section,
                room=result.room,
                instructor_name=ctx.instructor_for(result.subject, result.section),
                raw_source_text=clean,
                is_minor=ctx.is_minor(result.subject),
            )
        except Exception as exc:
            logger.warning(
                "Row %d col %d: line could not be parsed: %s",
                row_number,
                col_index,
                exc,
            )
            record(DiagnosticStatus.FAILED, str(exc))
            ctx.warnings.append(
                IngestError(
                    code=ErrorCode.W_LINE_FAILED,
                    message=f"Row {row_number}, column {col_index}: {exc}",
                    row_number=row_number,
                    stage="assemble",
                    recoverable=True,
                )
            )
            return

        ctx.slots.append(slot)
        record(DiagnosticStatus.PARSED)
        if self._config.log_sample_data:
            logger.debug("Row %d col %d: %r -> %s", row_number, col_index, clean, slot)
