"""
Calendar events derived from exam records.

Exam records are owned by the exam screens; the calendar only reads them.
Derived ids are "exam_" + exam id, so reloading never creates duplicates and
merge_with_derived replaces any stale stored copy.
"""

import logging
from datetime import datetime
from typing import Iterable

from .models import CalendarEvent, EventType, ExamRecord
from .storage import StorageBackend, EXAMS
from .timezone_utils import local_midnight, make_local

logger = logging.getLogger(__name__)


def exam_event_id(exam_id: str) -> str:
    return f"exam_{exam_id}"


def exam_to_event(exam: ExamRecord) -> CalendarEvent:
    """
    Build the read-only event for one exam.

    Raises:
        ValueError: the exam date or time cannot be parsed.
    """
    day = datetime.strptime(exam.date, "%Y-%m-%d").date()
    if exam.time:
        clock = datetime.strptime(exam.time, "%H:%M").time()
        start = make_local(day.year, day.month, day.day, clock.hour, clock.minute)
        all_day = False
    else:
        start = local_midnight(day)
        all_day = True

    return CalendarEvent(
        id=exam_event_id(exam.id),
        title=f"{exam.course} Exam" if exam.course else "Exam",
        description=exam.notes,
        start_date=start,
        all_day=all_day,
        type=EventType.EXAM,
        location=exam.location,
        course_id=exam.module_id,
        course_name=exam.course or None,
    )


def exam_events(exams: Iterable[ExamRecord]) -> list[CalendarEvent]:
    """Derive one event per exam, skipping exams with unusable dates."""
    events = []
    for exam in exams:
        try:
            events.append(exam_to_event(exam))
        except ValueError as e:
            logger.warning("Skipping exam %s: %s", exam.id, e)
    return events


def load_exams(storage: StorageBackend, owner: str) -> list[ExamRecord]:
    """Read the externally owned exam collection."""
    exams = []
    for record in storage.load_collection(owner, EXAMS):
        try:
            exams.append(ExamRecord.from_dict(record))
        except KeyError as e:
            logger.error("Exam record without %s ignored", e)
    return exams
