"""Unit tests for month, week and day projections."""
from datetime import date, datetime

import pytest
import pytz

from unifyer.models import CalendarEvent
from unifyer.projections import (
    MIN_EVENT_HEIGHT,
    events_on_day,
    month_events,
    month_grid,
    overlap_columns,
    timed_layout,
    upcoming,
    week_days,
    week_start,
)


@pytest.fixture
def at(local_timezone):
    """Build a local aware datetime."""
    def build(*args):
        return local_timezone.localize(datetime(*args))
    return build


class TestGrid:
    """Test cases for month and week grids."""

    def test_month_starting_on_sunday(self):
        cells = month_grid(2025, 6)

        assert len(cells) == 42
        assert cells[0].day == date(2025, 6, 1)
        assert cells[0].in_month
        assert cells[-1].day == date(2025, 7, 12)
        assert not cells[-1].in_month
        assert sum(c.in_month for c in cells) == 30

    def test_month_with_leading_days(self):
        cells = month_grid(2025, 5)

        assert cells[0].day == date(2025, 4, 27)
        assert [c.in_month for c in cells[:5]] == [False, False, False, False, True]

    def test_december_grid(self):
        cells = month_grid(2025, 12)
        assert cells[0].day == date(2025, 11, 30)
        assert any(c.day == date(2026, 1, 1) and not c.in_month for c in cells)

    def test_week_starts_sunday(self):
        assert week_start(date(2025, 6, 18)) == date(2025, 6, 15)
        assert week_start(date(2025, 6, 15)) == date(2025, 6, 15)
        assert week_days(date(2025, 6, 21)) == [date(2025, 6, d) for d in range(15, 22)]


class TestEventsOnDay:
    """Test cases for day selection."""

    def test_timed_event_on_local_start_date(self):
        # 02:00 UTC on June 4 is still June 3 in New York
        late = CalendarEvent(title="Late", start_date=datetime(2025, 6, 4, 2, 0, tzinfo=pytz.UTC))

        assert events_on_day([late], date(2025, 6, 3)) == [late]
        assert events_on_day([late], date(2025, 6, 4)) == []

    def test_all_day_span_with_exclusive_end(self, at):
        trip = CalendarEvent(title="Field trip", start_date=at(2025, 6, 10),
                             end_date=at(2025, 6, 13), all_day=True)

        days = [d for d in range(9, 15) if events_on_day([trip], date(2025, 6, d))]

        assert days == [10, 11, 12]

    def test_all_day_without_end(self, at):
        holiday = CalendarEvent(title="Holiday", start_date=at(2025, 6, 10), all_day=True)
        assert events_on_day([holiday], date(2025, 6, 10)) == [holiday]
        assert events_on_day([holiday], date(2025, 6, 11)) == []

    def test_sorted_by_start(self, at):
        second = CalendarEvent(title="B", start_date=at(2025, 6, 10, 14, 0))
        first = CalendarEvent(title="A", start_date=at(2025, 6, 10, 9, 0))
        assert events_on_day([second, first], date(2025, 6, 10)) == [first, second]

    def test_month_events_covers_grid(self, at):
        event = CalendarEvent(title="Lab", start_date=at(2025, 7, 2, 10, 0))

        grid = month_events([event], 2025, 6)

        assert len(grid) == 42
        assert grid[date(2025, 7, 2)] == [event]
        assert grid[date(2025, 6, 2)] == []


class TestTimedLayout:
    """Test cases for positioning in day and week views."""

    def test_default_duration(self, at):
        event = CalendarEvent(title="Lecture", start_date=at(2025, 6, 10, 9, 30))
        assert timed_layout(event, hour_height=48) == (456.0, 48.0)

    def test_minimum_height(self, at):
        event = CalendarEvent(title="Quick", start_date=at(2025, 6, 10, 9, 0),
                              end_date=at(2025, 6, 10, 9, 15))
        assert timed_layout(event, hour_height=48)[1] == MIN_EVENT_HEIGHT

    def test_overlap_columns(self, at):
        a = CalendarEvent(title="A", start_date=at(2025, 6, 10, 9, 0), end_date=at(2025, 6, 10, 11, 0))
        b = CalendarEvent(title="B", start_date=at(2025, 6, 10, 10, 0), end_date=at(2025, 6, 10, 12, 0))
        c = CalendarEvent(title="C", start_date=at(2025, 6, 10, 14, 0))

        layout = {event.title: (col, total) for event, col, total in overlap_columns([c, b, a])}

        assert layout == {"A": (0, 2), "B": (1, 2), "C": (0, 1)}

    def test_overlap_reuses_free_column(self, at):
        a = CalendarEvent(title="A", start_date=at(2025, 6, 10, 9, 0), end_date=at(2025, 6, 10, 12, 0))
        b = CalendarEvent(title="B", start_date=at(2025, 6, 10, 9, 0), end_date=at(2025, 6, 10, 10, 0))
        c = CalendarEvent(title="C", start_date=at(2025, 6, 10, 10, 0), end_date=at(2025, 6, 10, 11, 0))

        layout = {event.title: (col, total) for event, col, total in overlap_columns([a, b, c])}

        assert layout == {"A": (0, 2), "B": (1, 2), "C": (1, 2)}


class TestUpcoming:
    """Test cases for the upcoming list."""

    def test_future_only_and_limited(self, at):
        events = [
            CalendarEvent(title=f"E{day}", start_date=at(2025, 6, day, 9, 0))
            for day in (12, 3, 20, 15, 8, 25, 30)
        ]

        result = upcoming(events, now=at(2025, 6, 10), limit=3)

        assert [e.title for e in result] == ["E12", "E15", "E20"]

    def test_nothing_upcoming(self, at):
        past = CalendarEvent(title="Past", start_date=at(2025, 6, 1, 9, 0))
        assert upcoming([past], now=at(2025, 6, 10)) == []
