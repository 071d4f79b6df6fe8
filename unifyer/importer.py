"""
Import of .ics/.ical files into the Event Store.
"""

import logging
from pathlib import Path

from .errors import InvalidFileTypeError, InvalidFormatError
from .event_store import EventStore
from .ical import contains_calendar, parse_events
from .models import CalendarEvent, EventType, TYPE_COLORS

logger = logging.getLogger(__name__)


ACCEPTED_EXTENSIONS = (".ics", ".ical")


def check_filename(filename: str) -> None:
    if not filename.lower().endswith(ACCEPTED_EXTENSIONS):
        raise InvalidFileTypeError(filename)


def import_calendar_file(store: EventStore, filename: str, content: str) -> list[CalendarEvent]:
    """
    Parse calendar file content and add every valid event to the store.

    Imports always append; importing the same file twice yields duplicates.

    Raises:
        InvalidFileTypeError: the name does not end in .ics or .ical.
        InvalidFormatError: the content has no BEGIN:VCALENDAR marker.
    """
    check_filename(filename)
    if not contains_calendar(content):
        raise InvalidFormatError(filename)

    result = parse_events(content, EventType.IMPORTED, TYPE_COLORS[EventType.IMPORTED])
    imported = store.add_many(result.events)
    logger.info(
        "Imported %d events from %s (%d dropped, %d warnings)",
        len(imported), filename, result.dropped, len(result.warnings),
    )
    return imported


def import_calendar_path(store: EventStore, path: Path) -> list[CalendarEvent]:
    """Import a calendar file from disk."""
    path = Path(path)
    check_filename(path.name)
    content = path.read_text(encoding="utf-8", errors="replace")
    return import_calendar_file(store, path.name, content)
