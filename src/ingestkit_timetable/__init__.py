"""ingestkit-timetable -- timetable grid ingestion plugin for the ingestkit framework.

Public API exports for models, enums, errors, configuration, the extraction
engine stages, the store protocol, and the ``TimetableRouter`` orchestrator.
"""

from ingestkit_timetable.assembler import ImportContext, SlotAssembler
from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.cross_check import CrossCheckEngine, summarize
from ingestkit_timetable.errors import ErrorCode, IngestError, TimetableIngestException
from ingestkit_timetable.grid_reader import GridReader
from ingestkit_timetable.idempotency import compute_ingest_key
from ingestkit_timetable.merge_spans import MergeSpanResolver
from ingestkit_timetable.metadata import MetadataBlockLocator, MetadataParser
from ingestkit_timetable.models import (
    CommitResult,
    CrossCheckRow,
    DiagnosticRecord,
    DiagnosticStatus,
    ExtractedSlot,
    ExtractionResult,
    FacultyDiagnostic,
    IngestKey,
    InstructorRecord,
    MergeSpan,
    MetadataBlock,
    NormalizedEntitySet,
    ParsedLine,
    ParserUsed,
    RawGrid,
    ResolvedSlot,
    RoomRecord,
    RoomType,
    SectionRecord,
    SlotType,
    SubjectMetadata,
    SubjectRecord,
    TimeAxis,
    TimeColumn,
    TimetableRecord,
)
from ingestkit_timetable.protocols import ScheduleStoreBackend
from ingestkit_timetable.resolver import (
    DependencyNormalizer,
    DependencyResolver,
    instructor_key,
)
from ingestkit_timetable.router import TimetableRouter, create_default_router
from ingestkit_timetable.slot_parser import HeuristicSlotParser
from ingestkit_timetable.time_axis import TimeAxisDetector

__all__ = [
    # Enums
    "SlotType",
    "DiagnosticStatus",
    "RoomType",
    "ParserUsed",
    # Idempotency
    "IngestKey",
    "compute_ingest_key",
    # Grid and axis
    "MergeSpan",
    "RawGrid",
    "TimeColumn",
    "TimeAxis",
    # Metadata
    "SubjectMetadata",
    "FacultyDiagnostic",
    "MetadataBlock",
    # Extraction records
    "ParsedLine",
    "ExtractedSlot",
    "DiagnosticRecord",
    "CrossCheckRow",
    # Store payloads
    "SubjectRecord",
    "InstructorRecord",
    "RoomRecord",
    "SectionRecord",
    "TimetableRecord",
    "NormalizedEntitySet",
    "ResolvedSlot",
    # Results
    "ExtractionResult",
    "CommitResult",
    # Errors
    "ErrorCode",
    "IngestError",
    "TimetableIngestException",
    # Config
    "TimetableImportConfig",
    # Engine stages
    "GridReader",
    "TimeAxisDetector",
    "MetadataBlockLocator",
    "MetadataParser",
    "HeuristicSlotParser",
    "MergeSpanResolver",
    "ImportContext",
    "SlotAssembler",
    "CrossCheckEngine",
    "summarize",
    "DependencyNormalizer",
    "DependencyResolver",
    "instructor_key",
    # Protocols
    "ScheduleStoreBackend",
    # Router
    "TimetableRouter",
    "create_default_router",
]
