"""Deterministic ingest-key computation for deduplication.

:func:`compute_ingest_key` produces an :class:`IngestKey` from a workbook on
disk.  Identical file content, parser version, and target semester always
yield the same :pyattr:`IngestKey.key` digest.

The key is stored on the committed timetable; a re-import of identical
content is reported as ``W_DUPLICATE_IMPORT`` and still replaces the
semester's timetable.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from ingestkit_timetable.models import IngestKey


def compute_ingest_key(
    file_path: str,
    parser_version: str,
    partition: str | None = None,
    source_uri: str | None = None,
) -> IngestKey:
    """Compute a deterministic ingest key for deduplication.

    Parameters
    ----------
    file_path:
        Path to the file to hash.
    parser_version:
        Parser version string (e.g. ``"ingestkit_timetable:1.0.0"``).
    partition:
        Optional target partition, e.g. the semester as a string.
    source_uri:
        Optional override for the source URI stored in the key.  When
        *None*, the canonical absolute POSIX path of *file_path* is used.

    Raises
    ------
    FileNotFoundError
        If *file_path* does not exist.
    """
    content_hash = hashlib.sha256(Path(file_path).read_bytes()).hexdigest()

    if source_uri is None:
        source_uri = Path(file_path).resolve().as_posix()

    return IngestKey(
        content_hash=content_hash,
        source_uri=source_uri,
        parser_version=parser_version,
        partition=partition,
    )
