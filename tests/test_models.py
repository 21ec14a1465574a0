"""Tests for ingestkit_timetable.models and the error model."""

from __future__ import annotations

import datetime as dt

import pytest

from ingestkit_timetable.errors import ErrorCode, IngestError, TimetableIngestException
from ingestkit_timetable.models import (
    CrossCheckRow,
    DiagnosticRecord,
    DiagnosticStatus,
    ExtractionResult,
    IngestKey,
    MergeSpan,
    MetadataBlock,
    RawGrid,
    SlotType,
    TimeAxis,
    TimeColumn,
)


class TestEnums:
    @pytest.mark.unit
    def test_slot_type_values(self) -> None:
        assert [t.value for t in SlotType] == ["Lecture", "Tutorial", "Practical"]

    @pytest.mark.unit
    def test_diagnostic_status_is_str(self) -> None:
        assert DiagnosticStatus.SKIPPED == "Skipped"


class TestIngestKey:
    @pytest.mark.unit
    def test_key_is_deterministic(self) -> None:
        a = IngestKey(content_hash="abc", source_uri="f.xlsx", parser_version="v1", partition="3")
        b = IngestKey(content_hash="abc", source_uri="f.xlsx", parser_version="v1", partition="3")
        assert a.key == b.key
        assert len(a.key) == 64

    @pytest.mark.unit
    def test_partition_changes_key(self) -> None:
        a = IngestKey(content_hash="abc", source_uri="f.xlsx", parser_version="v1", partition="3")
        b = IngestKey(content_hash="abc", source_uri="f.xlsx", parser_version="v1", partition="4")
        assert a.key != b.key


class TestRawGrid:
    @pytest.mark.unit
    def test_cell_out_of_bounds_is_empty(self) -> None:
        grid = RawGrid(rows=[["a", "b"], ["c"]])
        assert grid.cell(0, 1) == "b"
        assert grid.cell(1, 1) == ""
        assert grid.cell(5, 0) == ""
        assert grid.cell(-1, 0) == ""

    @pytest.mark.unit
    def test_merges_default_empty(self) -> None:
        assert RawGrid(rows=[]).merges == []

    @pytest.mark.unit
    def test_raw_cell_values_converted_to_text(self) -> None:
        grid = RawGrid(rows=[["", ""], ["DAY", 0.5], ["MON", None], [dt.time(9, 50), 3.0]])
        assert grid.rows == [["", ""], ["DAY", "12:00"], ["MON", ""], ["09:50", "3"]]

    @pytest.mark.unit
    def test_merge_span_fields(self) -> None:
        span = MergeSpan(start_row=2, start_col=2, end_row=2, end_col=4)
        assert (span.start_col, span.end_col) == (2, 4)


class TestTimeColumns:
    @pytest.mark.unit
    def test_adjacent_columns_do_not_overlap(self) -> None:
        a = TimeColumn(column_index=1, start_time="08:50", end_time="09:50")
        b = TimeColumn(column_index=2, start_time="09:50", end_time="10:50")
        assert not a.overlaps(b)

    @pytest.mark.unit
    def test_overlap(self) -> None:
        a = TimeColumn(column_index=1, start_time="08:50", end_time="10:00")
        b = TimeColumn(column_index=2, start_time="09:50", end_time="10:50")
        assert a.overlaps(b) and b.overlaps(a)

    @pytest.mark.unit
    def test_grid_columns_excludes_synthetic(self) -> None:
        axis = TimeAxis(
            row_index=1,
            columns=[
                TimeColumn(column_index=1, start_time="08:50", end_time="09:50"),
                TimeColumn(
                    column_index=None,
                    start_time="10:50",
                    end_time="11:00",
                    is_break_or_lunch=True,
                ),
            ],
        )
        assert list(axis.grid_columns()) == [1]


class TestDerivedModels:
    @pytest.mark.unit
    def test_metadata_block_found(self) -> None:
        block = MetadataBlock(code_col=0, name_col=2, faculty_col=3)
        assert not block.found
        block.header_row_index = 7
        assert block.found

    @pytest.mark.unit
    def test_cross_check_row_no_reference(self) -> None:
        row = CrossCheckRow(
            subject_code="X1",
            parsed_lecture_count=1,
            parsed_tutorial_count=0,
            parsed_practical_count=0,
        )
        assert row.is_consistent is None
        assert not row.has_reference

    @pytest.mark.unit
    def test_diagnostics_with_status(self) -> None:
        result = ExtractionResult(
            ingest_run_id="run",
            time_axis=TimeAxis(row_index=1, columns=[]),
            metadata=MetadataBlock(code_col=0, name_col=2, faculty_col=3),
            slots=[],
            diagnostics=[
                DiagnosticRecord(row_number=3, raw_text="LUNCH", status=DiagnosticStatus.SKIPPED),
                DiagnosticRecord(row_number=3, raw_text="CS101", status=DiagnosticStatus.PARSED),
            ],
        )
        skipped = result.diagnostics_with_status(DiagnosticStatus.SKIPPED)
        assert [d.raw_text for d in skipped] == ["LUNCH"]


class TestErrors:
    @pytest.mark.unit
    def test_ingest_error_defaults(self) -> None:
        err = IngestError(code=ErrorCode.W_LINE_FAILED, message="boom")
        assert err.row_number is None
        assert err.recoverable is False

    @pytest.mark.unit
    def test_exception_wraps_error(self) -> None:
        exc = TimetableIngestException(
            code=ErrorCode.E_NO_TIME_AXIS,
            message="No time ranges found in row 2.",
            row_number=2,
            stage="time_axis",
        )
        assert exc.code == ErrorCode.E_NO_TIME_AXIS
        assert exc.message == "No time ranges found in row 2."
        assert exc.stage == "time_axis"
        assert exc.recoverable is False
        assert exc.error.row_number == 2
        assert str(exc) == "No time ranges found in row 2."
