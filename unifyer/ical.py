"""
iCalendar text interchange.

Reads the subset of RFC 5545 the organizer understands: VEVENT blocks with
SUMMARY, DESCRIPTION, DTSTART, DTEND and LOCATION. Everything else is skipped
so newer producers never break the import. Problems inside a single event are
recovered locally (defaulted field or dropped draft) and reported as
ParseWarning entries; they never abort the rest of the document.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Iterator, Optional

from .errors import MalformedPropertyError
from .models import CalendarEvent, EventType
from .timezone_utils import local_midnight, make_local, make_utc

logger = logging.getLogger(__name__)


CALENDAR_MARKER = "BEGIN:VCALENDAR"
BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"

_LINE_BREAK = re.compile(r"\r\n|\n|\r")
_ESCAPE = re.compile(r"\\[\\,;nN]")
_ESCAPES = {
    "\\\\": "\\",
    "\\,": ",",
    "\\;": ";",
    "\\n": "\n",
    "\\N": "\n",
}
_LEADING_DIGITS = re.compile(r"[0-9]+")


# ==================== Lines and Text ====================

def unfold_lines(text: str) -> Iterator[str]:
    """
    Yield logical lines, joining folded continuation lines.

    A physical line that starts with a single space or tab continues the
    previous one; that one leading character is dropped. Each call starts
    over on the full input.
    """
    current: Optional[str] = None
    for raw in _LINE_BREAK.split(text):
        if current is not None and raw[:1] in (" ", "\t"):
            current += raw[1:]
            continue
        if current is not None:
            yield current
        current = raw
    if current is not None:
        yield current


def unfold(text: str) -> str:
    """Unfold a whole document into newline separated logical lines."""
    return "\n".join(unfold_lines(text))


def unescape_text(value: str) -> str:
    """
    Reverse TEXT value escaping in one left-to-right pass.

    Replaced output is never scanned again, so "\\\\n" becomes a backslash
    followed by "n", not a newline. Unknown escapes are kept as they are.
    """
    return _ESCAPE.sub(lambda m: _ESCAPES[m.group(0)], value)


def contains_calendar(text: str) -> bool:
    return CALENDAR_MARKER in text


def split_property(line: str) -> Optional[tuple[str, list[str], str]]:
    """
    Split "NAME;PARAM=X;PARAM=Y:value" into its parts.

    Returns:
        (name, params, value), or None for a line without a colon.
    """
    key, sep, value = line.partition(":")
    if not sep:
        return None
    name, *params = key.split(";")
    return name, params, value


# ==================== Dates ====================

def is_date_only(params: list[str]) -> bool:
    """True when the parameters mark the value as a calendar date."""
    return any(p.strip().upper() == "VALUE=DATE" for p in params)


def _leading_int(token: str, start: int, end: int) -> Optional[int]:
    match = _LEADING_DIGITS.match(token[start:end])
    return int(match.group(0)) if match else None


def _roll_over(year: int, month: int, day: int) -> date:
    """Carry an out-of-range month into the year and day into the month."""
    years, month_index = divmod(month - 1, 12)
    return date(year + years, month_index + 1, 1) + timedelta(days=day - 1)


def decode_datetime(
    token: str,
    params: list[str],
    warn: Optional[Callable[[str], None]] = None,
) -> datetime:
    """
    Decode a DATE or DATE-TIME value.

    With VALUE=DATE the token is read as YYYYMMDD and the result is local
    midnight of that date. Otherwise it is read as YYYYMMDDTHHMMSS with an
    optional trailing Z: UTC with the Z, local wall-clock time without it.
    Missing or out-of-range time fields default to 0 and are reported through
    `warn` (or the module logger). An out-of-range month or day rolls over
    into the following months, so 20250230 becomes 2025-03-02, and is
    reported the same way.

    Raises:
        MalformedPropertyError: the token has no date digits, or the rolled
            over date falls outside the supported years.
    """
    token = token.strip()

    def report(message: str) -> None:
        if warn is not None:
            warn(message)
        else:
            logger.warning("%s in %r", message, token)

    year = _leading_int(token, 0, 4)
    month = _leading_int(token, 4, 6)
    day = _leading_int(token, 6, 8)
    if year is None or month is None or day is None:
        raise MalformedPropertyError(token, "no calendar date in value")

    try:
        calendar_day = date(year, month, day)
    except ValueError as e:
        try:
            calendar_day = _roll_over(year, month, day)
        except (ValueError, OverflowError):
            raise MalformedPropertyError(token, str(e)) from e
        report(f"{e}, rolled over to {calendar_day.isoformat()}")
    year, month, day = calendar_day.year, calendar_day.month, calendar_day.day

    if is_date_only(params):
        if len(token) != 8:
            report("date value is not 8 digits")
        return local_midnight(calendar_day)

    limits = (("hour", 9, 11, 23), ("minute", 11, 13, 59), ("second", 13, 15, 59))
    clock = []
    defaulted = []
    for name, start, end, highest in limits:
        value = _leading_int(token, start, end)
        if value is None or value > highest:
            defaulted.append(name)
            value = 0
        clock.append(value)
    if defaulted:
        report(f"{', '.join(defaulted)} defaulted to 0")

    if token.endswith("Z"):
        return make_utc(year, month, day, *clock)
    return make_local(year, month, day, *clock)


# ==================== Event Blocks ====================

@dataclass
class ParseWarning:
    """A recovered problem, reported with its logical line number."""
    line: int
    name: str
    value: str
    message: str


@dataclass
class ParseResult:
    events: list[CalendarEvent] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    dropped: int = 0


class EventBlockParser:
    """
    Two-state parser (outside/inside a VEVENT) producing draft events.

    Drafts are tagged with the event type, color and subscription id given
    here. A draft is emitted on END:VEVENT only when it has a title and a
    start date; anything else, including a block still open at end of input,
    is dropped. Components nested inside an event (VALARM and friends) are
    skipped so their properties cannot overwrite the event's own.
    """

    def __init__(
        self,
        event_type: EventType = EventType.IMPORTED,
        color: Optional[str] = None,
        subscription_source_id: Optional[str] = None,
    ):
        self.event_type = event_type
        self.color = color
        self.subscription_source_id = subscription_source_id

    def parse(self, text: str) -> ParseResult:
        result = ParseResult()
        for event in self._iter_events(text, result):
            result.events.append(event)
        if result.dropped:
            logger.debug("Dropped %d incomplete events", result.dropped)
        return result

    def iter_events(self, text: str) -> Iterator[CalendarEvent]:
        """Lazily yield finished drafts, discarding warnings."""
        return self._iter_events(text, ParseResult())

    def _iter_events(self, text: str, result: ParseResult) -> Iterator[CalendarEvent]:
        draft: Optional[dict] = None
        nested = 0

        for number, line in enumerate(unfold_lines(text), start=1):
            if draft is None:
                if line == BEGIN_EVENT:
                    draft = {}
                    nested = 0
                continue

            if line == END_EVENT:
                event = self._finish(draft)
                if event is None:
                    result.dropped += 1
                    logger.debug("Line %d: event without title or start dropped", number)
                else:
                    yield event
                draft = None
                continue

            if line == BEGIN_EVENT:
                # A new block before the old one closed: the open draft is lost
                result.dropped += 1
                self._warn(result, number, "BEGIN", line, "unterminated event replaced")
                draft = {}
                nested = 0
                continue

            if line.startswith("BEGIN:"):
                nested += 1
                continue
            if line.startswith("END:") and nested:
                nested -= 1
                continue
            if nested:
                continue

            parts = split_property(line)
            if parts is None:
                continue
            name, params, value = parts
            self._apply(draft, name.upper(), params, value, number, result)

        if draft is not None:
            result.dropped += 1
            self._warn(result, number, "END", "", "event not closed before end of input")

    def _apply(
        self,
        draft: dict,
        name: str,
        params: list[str],
        value: str,
        number: int,
        result: ParseResult,
    ) -> None:
        if name == "SUMMARY":
            draft["title"] = unescape_text(value)
        elif name == "DESCRIPTION":
            draft["description"] = unescape_text(value)
        elif name == "LOCATION":
            draft["location"] = unescape_text(value)
        elif name in ("DTSTART", "DTEND"):
            def warn(message: str) -> None:
                self._warn(result, number, name, value, message)

            try:
                decoded = decode_datetime(value, params, warn)
            except MalformedPropertyError as e:
                warn(e.reason)
                return
            if name == "DTSTART":
                draft["start_date"] = decoded
                draft["all_day"] = is_date_only(params)
            else:
                draft["end_date"] = decoded

    def _finish(self, draft: dict) -> Optional[CalendarEvent]:
        if not draft.get("title") or draft.get("start_date") is None:
            return None
        return CalendarEvent(
            type=self.event_type,
            color=self.color,
            subscription_source_id=self.subscription_source_id,
            **draft,
        )

    @staticmethod
    def _warn(result: ParseResult, number: int, prop: str, value: str, message: str) -> None:
        result.warnings.append(ParseWarning(line=number, name=prop, value=value, message=message))
        logger.warning("Line %d %s: %s", number, prop, message)


def parse_events(
    text: str,
    event_type: EventType = EventType.IMPORTED,
    color: Optional[str] = None,
    subscription_source_id: Optional[str] = None,
) -> ParseResult:
    """Parse a calendar document into validated draft events."""
    parser = EventBlockParser(event_type, color, subscription_source_id)
    return parser.parse(text)
