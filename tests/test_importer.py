"""Unit tests for calendar file import."""
import pytest

from unifyer.errors import InvalidFileTypeError, InvalidFormatError
from unifyer.importer import check_filename, import_calendar_file, import_calendar_path
from unifyer.models import EventType

from conftest import SAMPLE_ICS


class TestImportCalendarFile:
    """Test cases for importing .ics/.ical content."""

    def test_import_adds_events(self, store):
        imported = import_calendar_file(store, "semester.ics", SAMPLE_ICS)

        assert len(imported) == 2
        for event in imported:
            assert event.id.startswith("event_")
            assert event.type == EventType.IMPORTED
            assert event.color == "#6366f1"
            assert event.subscription_source_id is None
            assert event.editable
        assert sorted(e.title for e in store.list()) == ["Lecture", "Midterm, Calc III"]

    @pytest.mark.parametrize("filename", ["notes.txt", "calendar.ics.bak", "calendar"])
    def test_wrong_extension(self, store, filename):
        with pytest.raises(InvalidFileTypeError) as excinfo:
            import_calendar_file(store, filename, SAMPLE_ICS)

        assert str(excinfo.value) == "Please upload a valid iCal file (.ics or .ical)"
        assert store.list() == []

    @pytest.mark.parametrize("filename", ["a.ical", "UPPER.ICS", "Mixed.Ical"])
    def test_accepted_extensions(self, filename):
        check_filename(filename)

    def test_missing_calendar_marker(self, store):
        with pytest.raises(InvalidFormatError):
            import_calendar_file(store, "export.ics", "BEGIN:VEVENT\nSUMMARY:x\nEND:VEVENT\n")
        assert store.list() == []

    def test_importing_twice_duplicates(self, store):
        import_calendar_file(store, "semester.ics", SAMPLE_ICS)
        import_calendar_file(store, "semester.ics", SAMPLE_ICS)
        assert store.count() == 4

    def test_calendar_without_valid_events(self, store):
        assert import_calendar_file(store, "empty.ics", "BEGIN:VCALENDAR\nEND:VCALENDAR\n") == []
        assert store.count() == 0

    def test_import_from_path(self, store, tmp_path):
        path = tmp_path / "semester.ics"
        path.write_text(SAMPLE_ICS, encoding="utf-8")

        imported = import_calendar_path(store, path)

        assert len(imported) == 2

    def test_import_from_path_checks_extension_first(self, store, tmp_path):
        with pytest.raises(InvalidFileTypeError):
            import_calendar_path(store, tmp_path / "missing.txt")
