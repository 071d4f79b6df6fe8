"""
Error types for Unifyer Calendar.

Only container-level validation and network failures reach the user.
Property-level problems are recovered inside the parser, and unknown ids
are reported with None/False return values instead of exceptions.
"""

from typing import Optional


class CalendarError(Exception):
    """Base class for all calendar errors."""


class InvalidFileTypeError(CalendarError):
    """Import file extension is not .ics or .ical."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__("Please upload a valid iCal file (.ics or .ical)")


class InvalidFormatError(CalendarError):
    """Text lacks the BEGIN:VCALENDAR container marker."""

    def __init__(self, source: Optional[str] = None):
        self.source = source
        message = "Invalid iCal file format"
        if source:
            message = f"{message}: {source}"
        super().__init__(message)


class NetworkError(CalendarError):
    """Fetching a subscription URL failed."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Network error: {message}")


class MalformedPropertyError(CalendarError):
    """A property value could not be decoded at all."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"{reason}: {value!r}")


class ReadOnlyEventError(CalendarError):
    """Derived events can only be changed through their owning subsystem."""

    def __init__(self, event_id: str, event_type: str):
        self.event_id = event_id
        self.event_type = event_type
        super().__init__(f"Event {event_id} is read-only ({event_type})")
