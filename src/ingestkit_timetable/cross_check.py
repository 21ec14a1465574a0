"""Credit-hour cross-check of parsed slots against declared structure.

Advisory only: the report and its warnings go to the reviewer, never block
a commit.
"""

from __future__ import annotations

import logging
import math

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.errors import ErrorCode, IngestError
from ingestkit_timetable.models import (
    CrossCheckRow,
    ExtractedSlot,
    SlotType,
    SubjectMetadata,
)

logger = logging.getLogger("ingestkit_timetable")


class CrossCheckEngine:
    """Compares weekly occurrence counts with each subject's ``L-T-P``.

    An occurrence is a distinct ``(day, section)`` pair per slot type, so a
    practical spread over a merged two-hour block counts once.
    """

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    def expected_practicals(self, practical_hours: int) -> int:
        return math.ceil(practical_hours / self._config.practical_block_hours)

    def check(
        self,
        slots: list[ExtractedSlot],
        subjects: dict[str, SubjectMetadata],
    ) -> tuple[list[CrossCheckRow], list[IngestError]]:
        """Build one :class:`CrossCheckRow` per subject seen in *slots*.

        Returns
        -------
        tuple[list[CrossCheckRow], list[IngestError]]
            Rows sorted by subject code, and warning-level findings
            (``W_CROSS_CHECK_MISMATCH`` per inconsistent subject, one
            ``W_CROSS_CHECK_NO_REFERENCE`` listing unreferenced subjects).
        """
        occurrences: dict[str, dict[SlotType, set[tuple[str, str]]]] = {}
        for slot in slots:
            per_type = occurrences.setdefault(
                slot.subject_code, {t: set() for t in SlotType}
            )
            per_type[slot.slot_type].add((slot.day, slot.section))

        rows: list[CrossCheckRow] = []
        warnings: list[IngestError] = []
        unreferenced: list[str] = []

        for code in sorted(occurrences):
            per_type = occurrences[code]
            lectures = len(per_type[SlotType.LECTURE])
            tutorials = len(per_type[SlotType.TUTORIAL])
            practicals = len(per_type[SlotType.PRACTICAL])

            declared = subjects.get(code)
            is_consistent: bool | None = None
            if declared is not None and declared.has_credit_structure:
                expected_p = self.expected_practicals(declared.practical_hours)
                is_consistent = (
                    lectures == declared.lecture_hours
                    and tutorials == declared.tutorial_hours
                    and practicals == expected_p
                )
                if not is_consistent:
                    warnings.append(
                        IngestError(
                            code=ErrorCode.W_CROSS_CHECK_MISMATCH,
                            message=(
                                f"{code}: parsed L/T/P {lectures}/{tutorials}/"
                                f"{practicals}, declared "
                                f"{declared.lecture_hours}/{declared.tutorial_hours}/"
                                f"{expected_p}"
                            ),
                            stage="cross_check",
                            recoverable=True,
                        )
                    )
            else:
                unreferenced.append(code)

            rows.append(
                CrossCheckRow(
                    subject_code=code,
                    parsed_lecture_count=lectures,
                    parsed_tutorial_count=tutorials,
                    parsed_practical_count=practicals,
                    declared=declared,
                    is_consistent=is_consistent,
                )
            )

        if unreferenced:
            warnings.append(
                IngestError(
                    code=ErrorCode.W_CROSS_CHECK_NO_REFERENCE,
                    message=(
                        f"No declared credit structure for {len(unreferenced)} "
                        f"subject(s): {', '.join(unreferenced)}"
                    ),
                    stage="cross_check",
                    recoverable=True,
                )
            )

        summary = summarize(rows)
        logger.info(
            "Cross-check: %d consistent, %d inconsistent, %d without reference.",
            summary["consistent"],
            summary["inconsistent"],
            summary["no_reference"],
        )
        return rows, warnings


def summarize(rows: list[CrossCheckRow]) -> dict[str, int]:
    """Count consistent, inconsistent, and unreferenced cross-check rows."""
    return {
        "consistent": sum(1 for r in rows if r.is_consistent is True),
        "inconsistent": sum(1 for r in rows if r.is_consistent is False),
        "no_reference": sum(1 for r in rows if r.is_consistent is None),
    }
