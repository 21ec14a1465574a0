"""Tests for ingestkit_timetable.time_axis.TimeAxisDetector."""

from __future__ import annotations

import pytest

from conftest import make_grid  # noqa: E402
from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, TimetableIngestException
from ingestkit_timetable.models import RawGrid
from ingestkit_timetable.time_axis import TimeAxisDetector, add_hours, to_24_hour


def _header(*cells: str) -> RawGrid:
    return make_grid([[""] * (len(cells) + 1), ["DAY", *cells]])


class TestHourConversion:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("8:50", "08:50"),
            ("12:00", "12:00"),
            ("1:00", "13:00"),
            ("7.30", "19:30"),
            ("0:15", "00:15"),
            ("13:00", "13:00"),
        ],
    )
    def test_default_afternoon_rule(self, raw: str, expected: str) -> None:
        assert to_24_hour(raw, [1, 2, 3, 4, 5, 6, 7]) == expected

    @pytest.mark.unit
    def test_configurable_afternoon_hours(self) -> None:
        assert to_24_hour("7:00", [1, 2, 3]) == "07:00"

    @pytest.mark.unit
    def test_add_hours(self) -> None:
        assert add_hours("14:30", 2) == "16:30"
        assert add_hours("08:05", 1) == "09:05"


class TestTimeAxisDetector:
    @pytest.mark.unit
    def test_declared_plus_synthetic_columns(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("08:50-09:50", "09:50-10:50", "11:00-12:00")
        axis, warnings = TimeAxisDetector(sample_config).detect(grid)

        declared = [c for c in axis.columns if not c.is_break_or_lunch]
        synthetic = [c for c in axis.columns if c.is_break_or_lunch]
        assert len(declared) == 3
        assert [(c.start_time, c.end_time) for c in synthetic] == [
            ("10:50", "11:00"),
            ("13:00", "14:30"),
        ]
        assert all(c.column_index is None for c in synthetic)
        assert warnings == []

    @pytest.mark.unit
    def test_no_two_columns_overlap(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("08:50-09:50", "09:50-10:50", "11:00-12:00", "12:00-1:00", "2:30-3:30")
        axis, _ = TimeAxisDetector(sample_config).detect(grid)
        for i, a in enumerate(axis.columns):
            for b in axis.columns[i + 1:]:
                assert not a.overlaps(b)

    @pytest.mark.unit
    def test_columns_sorted_by_start(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("2:30-3:30", "08:50-09:50")
        axis, _ = TimeAxisDetector(sample_config).detect(grid)
        starts = [c.start_time for c in axis.columns]
        assert starts == sorted(starts)

    @pytest.mark.unit
    def test_pm_shift_and_separators(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("2.30 to 3.30", "3:30 – 4:30")
        axis, _ = TimeAxisDetector(sample_config).detect(grid)
        cols = axis.grid_columns()
        assert (cols[1].start_time, cols[1].end_time) == ("14:30", "15:30")
        assert (cols[2].start_time, cols[2].end_time) == ("15:30", "16:30")

    @pytest.mark.unit
    def test_non_time_cells_are_not_columns(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("08:50-09:50", "Remarks", "")
        axis, _ = TimeAxisDetector(sample_config).detect(grid)
        assert list(axis.grid_columns()) == [1]

    @pytest.mark.unit
    def test_identical_across_runs(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("08:50-09:50", "09:50-10:50")
        detector = TimeAxisDetector(sample_config)
        assert detector.detect(grid)[0] == detector.detect(grid)[0]

    @pytest.mark.unit
    def test_break_overlapping_declared_column_is_omitted(
        self, sample_config: TimetableImportConfig
    ) -> None:
        grid = _header("10:00-11:00")
        axis, warnings = TimeAxisDetector(sample_config).detect(grid)
        synthetic = [c for c in axis.columns if c.is_break_or_lunch]
        assert [(c.start_time, c.end_time) for c in synthetic] == [("13:00", "14:30")]
        assert [w.code for w in warnings] == [ErrorCode.W_BREAK_OVERLAP]

    @pytest.mark.unit
    def test_overlapping_declared_columns_warn(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("08:00-09:30", "09:00-10:00")
        _, warnings = TimeAxisDetector(sample_config).detect(grid)
        assert ErrorCode.W_TIME_COLUMN_OVERLAP in [w.code for w in warnings]

    @pytest.mark.unit
    def test_no_time_axis_is_fatal(self, sample_config: TimetableImportConfig) -> None:
        grid = _header("Morning", "Afternoon")
        with pytest.raises(TimetableIngestException) as excinfo:
            TimeAxisDetector(sample_config).detect(grid)
        assert excinfo.value.code == ErrorCode.E_NO_TIME_AXIS
        assert excinfo.value.error.row_number == 2

    @pytest.mark.unit
    def test_grid_too_short_is_fatal(self, sample_config: TimetableImportConfig) -> None:
        with pytest.raises(TimetableIngestException) as excinfo:
            TimeAxisDetector(sample_config).detect(make_grid([["08:50-09:50"]]))
        assert excinfo.value.code == ErrorCode.E_GRID_TOO_SHORT

    @pytest.mark.unit
    def test_custom_header_row(self) -> None:
        config = TimetableImportConfig(time_row_index=0)
        grid = make_grid([["DAY", "08:50-09:50"]])
        axis, _ = TimeAxisDetector(config).detect(grid)
        assert axis.row_index == 0
        assert list(axis.grid_columns()) == [1]
