"""Grid source adapter: turns a timetable workbook into a :class:`RawGrid`.

Two-tier reading strategy for ``.xlsx`` files:

1. **openpyxl** (full fidelity) -- cell values and merged ranges.
2. **pandas** ``read_excel`` (reduced fidelity) -- cell values only; merged
   ranges are lost, so practical slots fall back to the default duration.

Cell values are converted to text with :func:`~ingestkit_timetable.sanitizer.cell_to_text`
but otherwise left raw; sanitizing is the extraction engine's job.
"""

from __future__ import annotations

import logging
from pathlib import Path

import openpyxl
import pandas as pd
from openpyxl.chartsheet import Chartsheet
from openpyxl.worksheet.worksheet import Worksheet

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, IngestError, TimetableIngestException
from ingestkit_timetable.models import MergeSpan, ParserUsed, RawGrid
from ingestkit_timetable.sanitizer import cell_to_text

logger = logging.getLogger("ingestkit_timetable")


class GridReader:
    """Reads the first data worksheet (or a named one) of a workbook.

    Parameters
    ----------
    config:
        Pipeline configuration; ``max_rows_in_memory`` bounds the sheet size.
    """

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read(
        self, file_path: str, sheet_name: str | None = None
    ) -> tuple[RawGrid, list[IngestError]]:
        """Read a workbook into a :class:`RawGrid`.

        Returns
        -------
        tuple[RawGrid, list[IngestError]]
            The grid and any non-fatal warnings (parser fallback, skipped
            chart sheets).

        Raises
        ------
        FileNotFoundError
            If *file_path* does not exist.
        TimetableIngestException
            ``E_PARSE_EMPTY`` for a zero-byte file or a workbook with no data
            sheet, ``E_PARSE_CORRUPT`` when both readers fail.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if path.stat().st_size == 0:
            logger.error("Grid read failed: empty file %s", file_path)
            raise TimetableIngestException(
                code=ErrorCode.E_PARSE_EMPTY,
                message="File is empty (0 bytes).",
                stage="read",
                recoverable=False,
            )

        errors: list[IngestError] = []

        try:
            grid = self._read_openpyxl(file_path, sheet_name, errors)
        except TimetableIngestException:
            raise
        except Exception as exc:
            logger.warning(
                "openpyxl could not read %s: %s; trying pandas fallback",
                file_path,
                exc,
            )
            try:
                grid = self._read_pandas(file_path, sheet_name)
            except Exception as pandas_exc:
                logger.error("All readers failed for %s", file_path)
                raise TimetableIngestException(
                    code=ErrorCode.E_PARSE_CORRUPT,
                    message=f"All readers failed. File may be corrupt: {pandas_exc}",
                    stage="read",
                    recoverable=False,
                ) from pandas_exc
            errors.append(
                IngestError(
                    code=ErrorCode.W_PARSER_FALLBACK,
                    message=(
                        f"Sheet '{grid.sheet_name}' read via pandas fallback; "
                        f"merged ranges unavailable. Reason: "
                        f"{ErrorCode.E_PARSE_OPENPYXL_FAIL.value}"
                    ),
                    stage="read",
                    recoverable=True,
                )
            )

        logger.info(
            "Read %s sheet '%s': %d rows, %d merged ranges (%s)",
            path.name,
            grid.sheet_name,
            len(grid.rows),
            len(grid.merges),
            grid.parser_used.value,
        )
        return grid, errors

    # ------------------------------------------------------------------
    # Tier 1: openpyxl
    # ------------------------------------------------------------------

    def _read_openpyxl(
        self,
        file_path: str,
        sheet_name: str | None,
        errors: list[IngestError],
    ) -> RawGrid:
        wb = openpyxl.load_workbook(file_path, data_only=True)
        try:
            ws = self._select_worksheet(wb, sheet_name, errors)
            return self.grid_from_worksheet(ws)
        finally:
            wb.close()

    def _select_worksheet(
        self,
        wb: openpyxl.Workbook,
        sheet_name: str | None,
        errors: list[IngestError],
    ) -> Worksheet:
        if sheet_name is not None:
            ws = wb[sheet_name]
            if not isinstance(ws, Worksheet):
                raise TimetableIngestException(
                    code=ErrorCode.E_PARSE_EMPTY,
                    message=f"Sheet '{sheet_name}' is not a data worksheet.",
                    stage="read",
                    recoverable=False,
                )
            return ws

        for name in wb.sheetnames:
            ws = wb[name]
            if isinstance(ws, Chartsheet):
                errors.append(
                    IngestError(
                        code=ErrorCode.W_SHEET_SKIPPED_CHART,
                        message=f"Sheet '{name}' is chart-only; skipped.",
                        stage="read",
                        recoverable=True,
                    )
                )
                logger.info("Skipped chart-only sheet '%s'", name)
                continue
            if isinstance(ws, Worksheet):
                return ws

        raise TimetableIngestException(
            code=ErrorCode.E_PARSE_EMPTY,
            message="No data sheets found in workbook.",
            stage="read",
            recoverable=False,
        )

    def grid_from_worksheet(self, ws: Worksheet) -> RawGrid:
        """Build a :class:`RawGrid` from an already-open openpyxl worksheet."""
        row_count = ws.max_row or 0
        col_count = ws.max_column or 0
        if row_count > self._config.max_rows_in_memory:
            raise TimetableIngestException(
                code=ErrorCode.E_PARSE_CORRUPT,
                message=(
                    f"Sheet '{ws.title}' has {row_count} rows, exceeding "
                    f"max_rows_in_memory ({self._config.max_rows_in_memory})."
                ),
                stage="read",
                recoverable=False,
            )

        rows: list[list[str]] = []
        for row in ws.iter_rows(min_row=1, max_row=row_count, max_col=col_count):
            rows.append([cell_to_text(cell.value) for cell in row])

        # openpyxl bounds are 1-based; RawGrid spans are 0-based.
        merges = [
            MergeSpan(
                start_row=mr.min_row - 1,
                start_col=mr.min_col - 1,
                end_row=mr.max_row - 1,
                end_col=mr.max_col - 1,
            )
            for mr in ws.merged_cells.ranges
        ]

        return RawGrid(
            rows=rows,
            merges=merges,
            sheet_name=ws.title,
            parser_used=ParserUsed.OPENPYXL,
        )

    # ------------------------------------------------------------------
    # Tier 2: pandas fallback
    # ------------------------------------------------------------------

    def _read_pandas(self, file_path: str, sheet_name: str | None) -> RawGrid:
        target: str | int = sheet_name if sheet_name is not None else 0
        df = pd.read_excel(file_path, sheet_name=target, header=None)
        if len(df) > self._config.max_rows_in_memory:
            raise ValueError(
                f"{len(df)} rows exceed max_rows_in_memory "
                f"({self._config.max_rows_in_memory})"
            )

        rows: list[list[str]] = []
        for _, row in df.iterrows():
            rows.append([cell_to_text(v) if pd.notna(v) else "" for v in row])

        return RawGrid(
            rows=rows,
            merges=[],
            sheet_name=sheet_name if sheet_name is not None else "0",
            parser_used=ParserUsed.PANDAS_FALLBACK,
        )
