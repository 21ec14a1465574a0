"""Dependency normalization and foreign-key resolution for reviewed slots.

:class:`DependencyNormalizer` deduplicates the subjects, instructors, rooms,
and sections referenced by a slot list into upsert payloads keyed by their
natural keys.  :class:`DependencyResolver` maps each slot onto the ids the
store returned.  Subject and section are required: a slot missing either
is dropped.  Instructor and room are optional: a miss falls back to the
``Unknown`` instructor or a null room.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from ingestkit_timetable.config import TimetableImportConfig
from ingestkit_timetable.models import (
    ExtractedSlot,
    InstructorRecord,
    NormalizedEntitySet,
    ResolvedSlot,
    RoomRecord,
    RoomType,
    SectionRecord,
    SlotType,
    SubjectMetadata,
    SubjectRecord,
)

logger = logging.getLogger("ingestkit_timetable")

_HONORIFIC_RE = re.compile(r"^(Prof\.|Dr\.|Mr\.|Mrs\.|Ms\.)\s*", re.IGNORECASE)
_NON_LETTER_RE = re.compile(r"[^a-zA-Z\s]")


def instructor_key(name: str, domain: str) -> str:
    """Derive the natural key (an e-mail address) for an instructor name.

    ``"Dr. A. K. Rao"`` -> ``"a.k.rao@<domain>"``.  Spellings that differ
    only in honorific, punctuation, or case map to the same key.
    """
    clean = _HONORIFIC_RE.sub("", name.strip())
    clean = _NON_LETTER_RE.sub("", clean)
    prefix = ".".join(clean.split()).lower() or "unknown"
    return f"{prefix}@{domain}"


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _keyed(
    ids: dict[str, int], key: Callable[[str], str], entity: str
) -> dict[str, int]:
    """Re-key a store id map by *key*; on a key collision the last id wins."""
    keyed: dict[str, int] = {}
    for name, id_ in ids.items():
        k = key(name)
        if k in keyed and keyed[k] != id_:
            logger.debug(
                "%s '%s' collides with another %s on key %r; id %d replaces %d.",
                entity.capitalize(),
                name,
                entity,
                k,
                id_,
                keyed[k],
            )
        keyed[k] = id_
    return keyed


class DependencyNormalizer:
    """Builds a :class:`NormalizedEntitySet` from a reviewed slot list."""

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    def infer_room_types(self, slots: list[ExtractedSlot]) -> dict[str, RoomType]:
        """A room is a lab only when every slot held in it is a practical."""
        kinds: dict[str, set[SlotType]] = {}
        for slot in slots:
            kinds.setdefault(slot.room, set()).add(slot.slot_type)
        return {
            room: RoomType.LAB if seen == {SlotType.PRACTICAL} else RoomType.LECTURE
            for room, seen in kinds.items()
        }

    def normalize(
        self,
        slots: list[ExtractedSlot],
        semester: int,
        subjects: dict[str, SubjectMetadata] | None = None,
    ) -> NormalizedEntitySet:
        cfg = self._config
        subjects = subjects or {}

        subject_records: list[SubjectRecord] = []
        for code in _unique([s.subject_code for s in slots]):
            meta = subjects.get(code)
            if meta is None:
                subject_records.append(
                    SubjectRecord(
                        code=code,
                        name=code,
                        credits=cfg.default_credits,
                        subject_type=cfg.default_subject_type,
                    )
                )
                continue
            subject_records.append(
                SubjectRecord(
                    code=code,
                    name=meta.display_name or code,
                    credits=meta.credits,
                    lectures=meta.lecture_hours,
                    tutorials=meta.tutorial_hours,
                    practicals=meta.practical_hours,
                    subject_type=cfg.default_subject_type,
                )
            )

        instructor_records: list[InstructorRecord] = []
        seen_keys: set[str] = set()
        names = _unique([s.instructor_name for s in slots] + [cfg.unknown_instructor])
        for name in names:
            email = instructor_key(name, cfg.instructor_email_domain)
            if email in seen_keys:
                logger.debug("Instructor '%s' shares key %s; merged.", name, email)
                continue
            seen_keys.add(email)
            instructor_records.append(InstructorRecord(name=name, email=email))

        room_types = self.infer_room_types(slots)
        room_records = [
            RoomRecord(
                name=room,
                capacity=cfg.default_room_capacity,
                room_type=room_types[room],
            )
            for room in _unique([s.room for s in slots])
        ]

        section_records = [
            SectionRecord(
                name=name,
                semester=semester,
                program=cfg.default_program,
                student_count=cfg.default_student_count,
                group_type=cfg.default_group_type,
            )
            for name in _unique([s.section for s in slots] + [cfg.default_section])
        ]

        entities = NormalizedEntitySet(
            subjects=subject_records,
            instructors=instructor_records,
            rooms=room_records,
            sections=section_records,
        )
        logger.info(
            "Normalized %d subject(s), %d instructor(s), %d room(s), %d section(s).",
            len(subject_records),
            len(instructor_records),
            len(room_records),
            len(section_records),
        )
        return entities


class DependencyResolver:
    """Replaces slot references with store ids.

    Instructors match on :func:`instructor_key`, so every spelling merged by
    the normalizer finds the stored record; the other references match by
    case-insensitive name.
    """

    def __init__(self, config: TimetableImportConfig) -> None:
        self._config = config

    def day_of_week(self, day: str) -> int | None:
        """1-based position of the first configured day label found in *day*."""
        upper = day.upper()
        for i, label in enumerate(self._config.day_labels):
            if label.upper() in upper:
                return i + 1
        return None

    def resolve(
        self,
        slots: list[ExtractedSlot],
        subject_ids: dict[str, int],
        instructor_ids: dict[str, int],
        room_ids: dict[str, int],
        section_ids: dict[str, int],
    ) -> tuple[list[ResolvedSlot], int]:
        """Resolve *slots* against the id maps returned by the store.

        Returns
        -------
        tuple[list[ResolvedSlot], int]
            The resolved slots and the number of slots dropped because their
            subject, section, or day could not be resolved.
        """
        domain = self._config.instructor_email_domain
        subjects = _keyed(subject_ids, str.lower, "subject")
        instructors = _keyed(
            instructor_ids, lambda name: instructor_key(name, domain), "instructor"
        )
        rooms = _keyed(room_ids, str.lower, "room")
        sections = _keyed(section_ids, str.lower, "section")
        unknown_id = instructors.get(
            instructor_key(self._config.unknown_instructor, domain)
        )

        resolved: list[ResolvedSlot] = []
        dropped = 0
        for slot in slots:
            subject_id = subjects.get(slot.subject_code.lower())
            section_id = sections.get(slot.section.lower())
            day = self.day_of_week(slot.day)
            if subject_id is None or section_id is None or day is None:
                dropped += 1
                logger.debug(
                    "Dropped slot %s %s %s (subject=%s section=%s day=%s).",
                    slot.subject_code,
                    slot.section,
                    slot.day,
                    subject_id,
                    section_id,
                    day,
                )
                continue

            resolved.append(
                ResolvedSlot(
                    subject_id=subject_id,
                    instructor_id=instructors.get(
                        instructor_key(slot.instructor_name, domain), unknown_id
                    ),
                    room_id=rooms.get(slot.room.lower()),
                    section_id=section_id,
                    day_of_week=day,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    slot_type=slot.slot_type,
                )
            )

        logger.info("Resolved %d slot(s); %d dropped.", len(resolved), dropped)
        return resolved, dropped
