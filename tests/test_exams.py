"""Unit tests for exam-derived events."""
from datetime import datetime

import pytest

from unifyer.exams import exam_event_id, exam_events, exam_to_event, load_exams
from unifyer.models import DEFAULT_DURATION, EventType, ExamRecord
from unifyer.storage import EXAMS


@pytest.fixture
def exam():
    return ExamRecord(
        id="e1",
        course="Linear Algebra",
        date="2025-07-14",
        time="14:30",
        location="Hall 3",
        notes="Closed book",
        module_id="mod-42",
    )


class TestExamToEvent:
    """Test cases for deriving one event from an exam."""

    def test_timed_exam(self, exam, local_timezone):
        event = exam_to_event(exam)

        assert event.id == "exam_e1"
        assert event.title == "Linear Algebra Exam"
        assert event.type == EventType.EXAM
        assert event.start_date == local_timezone.localize(datetime(2025, 7, 14, 14, 30))
        assert event.end_date is None
        assert event.effective_end - event.start_date == DEFAULT_DURATION
        assert event.all_day is False
        assert event.location == "Hall 3"
        assert event.description == "Closed book"
        assert event.course_id == "mod-42"
        assert event.course_name == "Linear Algebra"
        assert not event.editable
        assert event.display_color == "#ef4444"

    def test_exam_without_time_is_all_day(self, exam, local_timezone):
        exam.time = None
        event = exam_to_event(exam)

        assert event.all_day
        assert event.start_date == local_timezone.localize(datetime(2025, 7, 14))

    def test_exam_without_course(self, exam):
        exam.course = ""
        assert exam_to_event(exam).title == "Exam"

    @pytest.mark.parametrize("field,value", [("date", "14.07.2025"), ("date", ""), ("time", "2pm")])
    def test_bad_values_raise(self, exam, field, value):
        setattr(exam, field, value)
        with pytest.raises(ValueError):
            exam_to_event(exam)

    def test_id_is_stable(self, exam):
        assert exam_to_event(exam).id == exam_to_event(exam).id == exam_event_id("e1")


class TestExamEvents:
    """Test cases for bulk derivation and loading."""

    def test_skips_unusable_exams(self, exam):
        broken = ExamRecord(id="e2", course="Physics", date="someday")
        assert [e.id for e in exam_events([exam, broken])] == ["exam_e1"]

    def test_load_exams_reads_stored_records(self, storage):
        storage.save_collection("tester", EXAMS, [
            {
                "id": 7,
                "course": "Statistics",
                "date": "2025-07-20",
                "time": "",
                "location": "",
                "notes": "",
                "moduleId": "mod-1",
                "grade": None,
            },
            {"course": "No id"},
        ])

        exams = load_exams(storage, "tester")

        assert len(exams) == 1
        record = exams[0]
        assert record.id == "7"
        assert record.time is None
        assert record.module_id == "mod-1"
        assert record.extra == {"grade": None}
        assert record.to_dict()["grade"] is None
        assert record.to_dict()["moduleId"] == "mod-1"

    def test_no_exam_collection(self, storage):
        assert load_exams(storage, "tester") == []
