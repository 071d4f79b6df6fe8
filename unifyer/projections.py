"""
Read-side projections for month, week and day views.

Pure functions over event lists; nothing here touches storage. Weeks start
on Sunday and the month grid always has six rows of seven days.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from .models import CalendarEvent
from .timezone_utils import local_date, to_local_datetime

MONTH_GRID_CELLS = 42
DEFAULT_HOUR_HEIGHT = 48  # pixels per hour in day/week views
MIN_EVENT_HEIGHT = 24


@dataclass
class DayCell:
    day: date
    in_month: bool


def sort_events(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    return sorted(events, key=lambda e: (e.start_date, e.title))


def _all_day_span(event: CalendarEvent) -> tuple[date, date]:
    start = local_date(event.start_date)
    if event.end_date is None:
        return start, start
    end = local_date(event.end_date)
    # All-day ends are exclusive (midnight of the following day)
    if end > start:
        end -= timedelta(days=1)
    return start, end


def events_on_day(events: Iterable[CalendarEvent], day: date) -> list[CalendarEvent]:
    """
    Events to show on one day.

    Timed events appear on the local date they start. All-day events appear
    on every date they cover.
    """
    selected = []
    for event in events:
        if event.all_day:
            start, end = _all_day_span(event)
            if start <= day <= end:
                selected.append(event)
        elif local_date(event.start_date) == day:
            selected.append(event)
    return sort_events(selected)


def week_start(day: date) -> date:
    """The Sunday on or before a date."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_days(day: date) -> list[date]:
    first = week_start(day)
    return [first + timedelta(days=i) for i in range(7)]


def month_grid(year: int, month: int) -> list[DayCell]:
    """
    Six weeks of cells covering a month.

    Starts with the trailing days of the previous month needed to reach the
    first Sunday and pads with the next month to 42 cells.
    """
    first = date(year, month, 1)
    start = week_start(first)
    cells = []
    for i in range(MONTH_GRID_CELLS):
        day = start + timedelta(days=i)
        cells.append(DayCell(day, day.month == month and day.year == year))
    return cells


def month_events(events: list[CalendarEvent], year: int, month: int) -> dict[date, list[CalendarEvent]]:
    """Events per visible cell of the month grid."""
    return {cell.day: events_on_day(events, cell.day) for cell in month_grid(year, month)}


def timed_layout(event: CalendarEvent, hour_height: int = DEFAULT_HOUR_HEIGHT) -> tuple[float, float]:
    """
    Vertical placement of a timed event in a day column.

    Returns:
        (top, height) in pixels. Events without an end use the default
        60 minute duration; height never drops below MIN_EVENT_HEIGHT.
    """
    start = to_local_datetime(event.start_date)
    minutes = (event.effective_end - event.start_date).total_seconds() / 60
    top = (start.hour * 60 + start.minute) * hour_height / 60
    height = max(minutes * hour_height / 60, MIN_EVENT_HEIGHT)
    return top, height


def _hours(event: CalendarEvent) -> tuple[float, float]:
    start = to_local_datetime(event.start_date)
    end = to_local_datetime(event.effective_end)
    start_hour = start.hour + start.minute / 60.0
    end_hour = end.hour + end.minute / 60.0
    if end.date() > start.date():
        end_hour = 24.0
    # Ensure minimum duration
    if end_hour <= start_hour:
        end_hour = start_hour + 0.5
    return start_hour, end_hour


def overlap_columns(events: list[CalendarEvent]) -> list[tuple[CalendarEvent, int, int]]:
    """
    Assign side-by-side columns to overlapping timed events of one day.

    Returns:
        (event, column, total_columns) for every event; total_columns is the
        width of the overlap group the event belongs to.
    """
    ordered = sorted(events, key=lambda e: (_hours(e)[0], -(_hours(e)[1] - _hours(e)[0])))

    # Build overlap groups
    groups: list[list[CalendarEvent]] = []
    for event in ordered:
        s1, e1 = _hours(event)
        overlapping = [
            i for i, group in enumerate(groups)
            if any(s1 < _hours(other)[1] and _hours(other)[0] < e1 for other in group)
        ]
        if not overlapping:
            groups.append([event])
        elif len(overlapping) == 1:
            groups[overlapping[0]].append(event)
        else:
            merged = []
            for i in sorted(overlapping, reverse=True):
                merged.extend(groups.pop(i))
            merged.append(event)
            groups.append(merged)

    # Assign columns greedily within each group
    layout = []
    for group in groups:
        group.sort(key=lambda e: _hours(e)[0])
        column_ends: list[float] = []
        assigned: list[tuple[CalendarEvent, int]] = []
        for event in group:
            start, end = _hours(event)
            for col, col_end in enumerate(column_ends):
                if start >= col_end:
                    column_ends[col] = end
                    assigned.append((event, col))
                    break
            else:
                assigned.append((event, len(column_ends)))
                column_ends.append(end)
        layout.extend((event, col, len(column_ends)) for event, col in assigned)
    return layout


def upcoming(events: Iterable[CalendarEvent], now: Optional[datetime] = None,
             limit: int = 5) -> list[CalendarEvent]:
    """The next events starting at or after now, soonest first."""
    if now is None:
        now = datetime.now().astimezone()
    future = [e for e in events if e.start_date >= now]
    return sort_events(future)[:limit]
