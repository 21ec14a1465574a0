"""TimetableRouter -- orchestrator and public API for ingestkit-timetable.

Drives a timetable workbook through the extraction engine and into the
schedule store in two phases, with a human review step in between:

1. :meth:`TimetableRouter.extract` -- read the grid, detect the time axis,
   locate and parse the metadata block, assemble slots with diagnostics,
   and run a pre-commit cross-check.  Nothing external is touched.
2. :meth:`TimetableRouter.commit` -- normalize the (possibly edited) slot
   list, upsert dependencies, resolve foreign keys, replace the semester's
   timetable, and bulk-insert the slots.

:meth:`TimetableRouter.process` runs both phases back to back.  Fatal
conditions (no time axis, unreadable file, failed replace) raise
:class:`~ingestkit_timetable.errors.TimetableIngestException`; everything
else accumulates in the result's ``warnings`` / ``error_details``.
"""

from __future__ import annotations

import logging
import os
import time
import uuid

from ingestkit_timetable.assembler import SlotAssembler
from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.cross_check import CrossCheckEngine
from ingestkit_timetable.errors import ErrorCode, IngestError
from ingestkit_timetable.grid_reader import GridReader
from ingestkit_timetable.idempotency import compute_ingest_key
from ingestkit_timetable.metadata import MetadataBlockLocator, MetadataParser
from ingestkit_timetable.models import (
    CommitResult,
    ExtractedSlot,
    ExtractionResult,
    NormalizedEntitySet,
    RawGrid,
    SubjectMetadata,
    TimetableRecord,
)
from ingestkit_timetable.protocols import ScheduleStoreBackend
from ingestkit_timetable.resolver import DependencyNormalizer, DependencyResolver
from ingestkit_timetable.time_axis import TimeAxisDetector

logger = logging.getLogger("ingestkit_timetable")


def _merge_errors(
    result: ExtractionResult | CommitResult, errors: list[IngestError]
) -> None:
    """Merge stage errors/warnings into a result.

    Errors (E_*) go into ``result.errors``; warnings (W_*) go into
    ``result.warnings``.  All go into ``result.error_details``.
    """
    for error in errors:
        if error.code.value.startswith("E_"):
            if error.code.value not in result.errors:
                result.errors.append(error.code.value)
        else:
            if error.code.value not in result.warnings:
                result.warnings.append(error.code.value)
        result.error_details.append(error)


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class TimetableRouter:
    """Orchestrator that drives the full timetable import pipeline.

    Parameters
    ----------
    store:
        Backend for the schedule store (e.g. SQLite).
    config:
        Pipeline configuration. Uses defaults when *None*.
    """

    def __init__(
        self,
        store: ScheduleStoreBackend,
        config: TimetableImportConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or TimetableImportConfig()

        self._reader = GridReader(self._config)
        self._time_axis = TimeAxisDetector(self._config)
        self._locator = MetadataBlockLocator(self._config)
        self._metadata_parser = MetadataParser(self._config)
        self._assembler = SlotAssembler(self._config)
        self._cross_check = CrossCheckEngine(self._config)
        self._normalizer = DependencyNormalizer(self._config)
        self._resolver = DependencyResolver(self._config)

    # ------------------------------------------------------------------
    # Phase 1: extraction
    # ------------------------------------------------------------------

    def extract(
        self,
        source: str | RawGrid,
        semester: int | None = None,
        sheet_name: str | None = None,
        source_uri: str | None = None,
    ) -> ExtractionResult:
        """Extract slots and diagnostics from a workbook path or a raw grid.

        Parameters
        ----------
        source:
            Filesystem path to an ``.xlsx`` file, or an already-loaded
            :class:`RawGrid`.
        semester:
            Target semester; only used to partition the ingest key.
        sheet_name:
            Worksheet to read; defaults to the first data sheet.
        source_uri:
            Optional override for the source URI stored in the ingest key.

        Raises
        ------
        TimetableIngestException
            On unreadable input or a grid without a time axis.
        """
        overall_start = time.monotonic()
        config = self._config
        ingest_run_id = str(uuid.uuid4())
        stage_errors: list[IngestError] = []

        ingest_key: str | None = None
        if isinstance(source, RawGrid):
            grid = source
            label = source.sheet_name or "<grid>"
        else:
            grid, read_errors = self._reader.read(source, sheet_name)
            stage_errors.extend(read_errors)
            label = os.path.basename(source)
            ingest_key = compute_ingest_key(
                file_path=source,
                parser_version=config.parser_version,
                partition=str(semester) if semester is not None else None,
                source_uri=source_uri,
            ).key

        time_axis, axis_warnings = self._time_axis.detect(grid)
        stage_errors.extend(axis_warnings)

        block = self._metadata_parser.parse(grid, self._locator.locate(grid))
        if not block.found:
            stage_errors.append(
                IngestError(
                    code=ErrorCode.W_METADATA_NOT_FOUND,
                    message=(
                        "No 'Course Code ... Faculties' header found; "
                        "instructors default to "
                        f"'{config.unknown_instructor}' and the grid is read "
                        "to the end of the sheet."
                    ),
                    stage="metadata",
                    recoverable=True,
                )
            )

        ctx = self._assembler.assemble(
            grid, self._assembler.new_context(time_axis, block)
        )
        stage_errors.extend(ctx.warnings)

        cross_check, check_warnings = self._cross_check.check(ctx.slots, block.subjects)
        stage_errors.extend(check_warnings)

        for w in stage_errors:
            if w.code.value.startswith("W_"):
                logger.warning("%s: %s", label, w.message)

        result = ExtractionResult(
            source=source if isinstance(source, str) else grid.sheet_name,
            ingest_key=ingest_key,
            ingest_run_id=ingest_run_id,
            time_axis=time_axis,
            metadata=block,
            slots=ctx.slots,
            diagnostics=ctx.diagnostics,
            cross_check=cross_check,
        )
        _merge_errors(result, stage_errors)
        result.processing_time_seconds = time.monotonic() - overall_start

        logger.info(
            "Extracted %s: key=%s slots=%d diagnostics=%d time=%.3fs",
            label,
            ingest_key[:16] if ingest_key else "-",
            len(result.slots),
            len(result.diagnostics),
            result.processing_time_seconds,
        )
        return result

    # ------------------------------------------------------------------
    # Phase 2: commit
    # ------------------------------------------------------------------

    def commit(
        self,
        slots: list[ExtractedSlot],
        semester: int,
        subjects: dict[str, SubjectMetadata] | None = None,
        name: str | None = None,
        created_by: str | None = None,
        ingest_key: str | None = None,
    ) -> CommitResult:
        """Write a reviewed slot list to the store as the semester's timetable.

        Parameters
        ----------
        slots:
            The reviewed slot list (usually ``ExtractionResult.slots``).
        semester:
            Target semester; the partition that is replaced.
        subjects:
            Declared subject metadata (``ExtractionResult.metadata.subjects``)
            for subject names, credits, and the post-commit cross-check.
        name:
            Timetable name; defaults to ``"Imported Sem <semester>"``.
        created_by:
            Identifier of the importing user, stored on the timetable.
        ingest_key:
            ``ExtractionResult.ingest_key``; stored on the timetable so a
            re-import of identical content is reported as
            ``W_DUPLICATE_IMPORT``.

        Raises
        ------
        TimetableIngestException
            When an upsert fails or the delete-then-insert replace fails.
            A replace failure may leave the semester without a timetable.
        """
        overall_start = time.monotonic()
        config = self._config
        subjects = subjects or {}
        stage_errors: list[IngestError] = []

        if not slots:
            result = CommitResult(
                semester=semester,
                slots_inserted=0,
                slots_dropped=0,
                entities=NormalizedEntitySet(),
            )
            _merge_errors(
                result,
                [
                    IngestError(
                        code=ErrorCode.E_COMMIT_NO_SLOTS,
                        message="No slots to commit; store left untouched.",
                        stage="commit",
                        recoverable=False,
                    )
                ],
            )
            logger.error("Commit for semester %d aborted: no slots.", semester)
            return result

        entities = self._normalizer.normalize(slots, semester, subjects)

        self._store.upsert_subjects(entities.subjects)
        self._store.upsert_instructors(entities.instructors)
        self._store.upsert_rooms(entities.rooms)
        self._store.upsert_sections(entities.sections)
        logger.info("All dependencies synced for semester %d.", semester)

        resolved, dropped = self._resolver.resolve(
            slots,
            subject_ids=self._store.fetch_subject_ids(),
            instructor_ids=self._store.fetch_instructor_ids(),
            room_ids=self._store.fetch_room_ids(),
            section_ids=self._store.fetch_section_ids(semester),
        )
        if dropped:
            stage_errors.append(
                IngestError(
                    code=ErrorCode.W_SLOTS_DROPPED,
                    message=f"{dropped} slot(s) dropped: subject, section, or day unresolved.",
                    stage="resolve",
                    recoverable=True,
                )
            )

        timetable_id: int | None = None
        inserted = 0
        if resolved:
            if ingest_key and self._store.fetch_ingest_key(semester) == ingest_key:
                stage_errors.append(
                    IngestError(
                        code=ErrorCode.W_DUPLICATE_IMPORT,
                        message=(
                            f"Identical content was already imported for "
                            f"semester {semester}; its timetable is replaced."
                        ),
                        stage="commit",
                        recoverable=True,
                    )
                )
            timetable_id = self._store.replace_timetable(
                TimetableRecord(
                    name=name or f"Imported Sem {semester}",
                    academic_year=config.academic_year,
                    semester=semester,
                    status=config.timetable_status,
                    lunch_start=config.lunch_window[0],
                    lunch_end=config.lunch_window[1],
                    created_by=created_by,
                    ingest_key=ingest_key,
                )
            )
            inserted = self._store.insert_slots(timetable_id, resolved)
        else:
            stage_errors.append(
                IngestError(
                    code=ErrorCode.E_COMMIT_NO_SLOTS,
                    message=(
                        "Every slot failed to resolve; existing timetable for "
                        f"semester {semester} left in place."
                    ),
                    stage="commit",
                    recoverable=False,
                )
            )

        cross_check, check_warnings = self._cross_check.check(slots, subjects)
        stage_errors.extend(check_warnings)

        for e in stage_errors:
            if e.code.value.startswith("E_"):
                logger.error("Commit: %s", e.message)
            else:
                logger.warning("Commit: %s", e.message)

        result = CommitResult(
            timetable_id=timetable_id,
            semester=semester,
            slots_inserted=inserted,
            slots_dropped=dropped,
            entities=entities,
            cross_check=cross_check,
        )
        _merge_errors(result, stage_errors)
        result.processing_time_seconds = time.monotonic() - overall_start

        logger.info(
            "Committed semester %d: timetable=%s inserted=%d dropped=%d "
            "store=%s time=%.3fs",
            semester,
            timetable_id,
            inserted,
            dropped,
            self._store.get_connection_uri(),
            result.processing_time_seconds,
        )
        return result

    def process(
        self,
        file_path: str,
        semester: int,
        name: str | None = None,
        created_by: str | None = None,
        sheet_name: str | None = None,
    ) -> tuple[ExtractionResult, CommitResult]:
        """Extract and commit a workbook without a review step."""
        extraction = self.extract(file_path, semester=semester, sheet_name=sheet_name)
        committed = self.commit(
            extraction.slots,
            semester,
            subjects=extraction.metadata.subjects,
            name=name,
            created_by=created_by,
            ingest_key=extraction.ingest_key,
        )
        return extraction, committed


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_default_router(**overrides) -> TimetableRouter:
    """Create a TimetableRouter with the default SQLite backend.

    Convenience factory for local development and testing.  All defaults
    can be overridden via keyword arguments:

    - ``store``: ScheduleStoreBackend (default: in-memory SQLiteScheduleStore)
    - ``db_path``: path for the default SQLite store (default: ``":memory:"``)
    - ``config``: TimetableImportConfig (default: TimetableImportConfig())

    Any other keyword arguments are passed to TimetableImportConfig.
    """
    from ingestkit_timetable.backends import SQLiteScheduleStore

    router_keys = {"store", "db_path", "config"}
    router_kwargs = {k: v for k, v in overrides.items() if k in router_keys}
    config_kwargs = {k: v for k, v in overrides.items() if k not in router_keys}

    config = router_kwargs.pop("config", None)
    if config is None:
        config = TimetableImportConfig(**config_kwargs)

    store = router_kwargs.pop("store", None)
    if store is None:
        store = SQLiteScheduleStore(router_kwargs.pop("db_path", ":memory:"))

    return TimetableRouter(store=store, config=config)
