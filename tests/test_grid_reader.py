"""Tests for ingestkit_timetable.grid_reader.GridReader."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from conftest import SAMPLE_ROWS  # noqa: E402
from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, TimetableIngestException
from ingestkit_timetable.grid_reader import GridReader
from ingestkit_timetable.models import MergeSpan, ParserUsed


@pytest.fixture()
def reader(sample_config: TimetableImportConfig) -> GridReader:
    return GridReader(sample_config)


class TestOpenpyxlPath:
    @pytest.mark.unit
    def test_reads_cells_and_merges(self, reader, sample_timetable_xlsx) -> None:
        grid, errors = reader.read(str(sample_timetable_xlsx))
        assert errors == []
        assert grid.parser_used == ParserUsed.OPENPYXL
        assert grid.sheet_name == "Sem3"
        assert grid.rows == SAMPLE_ROWS
        assert grid.merges == [MergeSpan(start_row=2, start_col=5, end_row=2, end_col=6)]

    @pytest.mark.unit
    def test_named_sheet(self, reader, sample_timetable_xlsx) -> None:
        grid, _ = reader.read(str(sample_timetable_xlsx), sheet_name="Sem3")
        assert grid.cell(2, 1) == "CS101 (L) (LT-101) Sec A"

    @pytest.mark.unit
    def test_chart_sheet_skipped(self, reader, chart_first_xlsx) -> None:
        grid, errors = reader.read(str(chart_first_xlsx))
        assert grid.sheet_name == "Grid"
        assert [e.code for e in errors] == [ErrorCode.W_SHEET_SKIPPED_CHART]

    @pytest.mark.unit
    def test_row_limit(self, sample_timetable_xlsx) -> None:
        reader = GridReader(TimetableImportConfig(max_rows_in_memory=3))
        with pytest.raises(TimetableIngestException) as exc_info:
            reader.read(str(sample_timetable_xlsx))
        assert exc_info.value.code == ErrorCode.E_PARSE_CORRUPT


class TestFallbackAndFailures:
    @pytest.mark.unit
    def test_pandas_fallback_loses_merges(self, reader, sample_timetable_xlsx) -> None:
        with patch.object(GridReader, "_read_openpyxl", side_effect=KeyError("boom")):
            grid, errors = reader.read(str(sample_timetable_xlsx))

        assert grid.parser_used == ParserUsed.PANDAS_FALLBACK
        assert grid.merges == []
        assert grid.cell(1, 1) == "08:50-09:50"
        assert grid.cell(2, 2) == ""
        assert [e.code for e in errors] == [ErrorCode.W_PARSER_FALLBACK]

    @pytest.mark.unit
    def test_missing_file(self, reader, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            reader.read(str(tmp_path / "nope.xlsx"))

    @pytest.mark.unit
    def test_empty_file(self, reader, empty_file) -> None:
        with pytest.raises(TimetableIngestException) as exc_info:
            reader.read(str(empty_file))
        assert exc_info.value.code == ErrorCode.E_PARSE_EMPTY
        assert not exc_info.value.recoverable

    @pytest.mark.unit
    def test_corrupt_file(self, reader, corrupt_file) -> None:
        with pytest.raises(TimetableIngestException) as exc_info:
            reader.read(str(corrupt_file))
        assert exc_info.value.code == ErrorCode.E_PARSE_CORRUPT
