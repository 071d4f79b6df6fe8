"""
Data model for calendar events, subscriptions and exam records.

Events are plain dataclasses with a closed EventType. Every table keyed by
EventType is checked at import time to cover all members, so adding a new
type fails loudly until each branch point handles it.
"""

import random
import string
import time
from dataclasses import dataclass, field, replace, fields as dataclass_fields
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


DEFAULT_DURATION = timedelta(minutes=60)


class EventType(Enum):
    """Kind of calendar event; decides default color and editability."""
    EXAM = "exam"
    PROJECT = "project"
    ASSIGNMENT = "assignment"
    PERSONAL = "personal"
    IMPORTED = "imported"
    SUBSCRIPTION = "subscription"


def _exhaustive(table: dict, name: str) -> dict:
    missing = set(EventType) - set(table)
    if missing:
        raise RuntimeError(f"{name} lacks entries for {sorted(m.value for m in missing)}")
    return table


TYPE_COLORS: dict[EventType, str] = _exhaustive({
    EventType.EXAM: "#ef4444",
    EventType.PROJECT: "#f59e0b",
    EventType.ASSIGNMENT: "#3b82f6",
    EventType.PERSONAL: "#10b981",
    EventType.IMPORTED: "#6366f1",
    EventType.SUBSCRIPTION: "#8b5cf6",
}, "TYPE_COLORS")

# Exam and subscription events belong to their owning subsystem
TYPE_EDITABLE: dict[EventType, bool] = _exhaustive({
    EventType.EXAM: False,
    EventType.PROJECT: True,
    EventType.ASSIGNMENT: True,
    EventType.PERSONAL: True,
    EventType.IMPORTED: True,
    EventType.SUBSCRIPTION: False,
}, "TYPE_EDITABLE")


_DEFAULT_TYPE_COLORS = dict(TYPE_COLORS)


def set_type_colors(overrides: dict[str, str]) -> None:
    """Reset the palette to its defaults, then apply overrides keyed by type name."""
    TYPE_COLORS.update(_DEFAULT_TYPE_COLORS)
    for name, color in overrides.items():
        TYPE_COLORS[EventType(name)] = color


def generate_id(prefix: str = "event") -> str:
    """Generate an id like event_1718000000000_k3j9x0a2b."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{millis}_{suffix}"


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class CalendarEvent:
    """
    One calendar occurrence.

    A draft is an event whose id is still None; the Event Store assigns ids
    when drafts are persisted. Derived exam events carry stable ids.
    """
    title: str
    start_date: datetime
    type: EventType = EventType.PERSONAL
    id: Optional[str] = None
    description: Optional[str] = None
    end_date: Optional[datetime] = None
    all_day: bool = False
    color: Optional[str] = None
    location: Optional[str] = None
    course_id: Optional[str] = None
    course_name: Optional[str] = None
    subscription_source_id: Optional[str] = None
    reminder: Optional[int] = None  # minutes before start

    @property
    def is_draft(self) -> bool:
        return self.id is None

    @property
    def display_color(self) -> str:
        """Explicit color, else the default for the event type."""
        return self.color or TYPE_COLORS[self.type]

    @property
    def effective_end(self) -> datetime:
        """End date, or start plus the default duration when absent."""
        if self.end_date is not None:
            return self.end_date
        return self.start_date + DEFAULT_DURATION

    @property
    def editable(self) -> bool:
        return TYPE_EDITABLE[self.type]

    def with_changes(self, **changes) -> 'CalendarEvent':
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "all_day": self.all_day,
            "type": self.type.value,
            "color": self.color,
            "location": self.location,
            "course_id": self.course_id,
            "course_name": self.course_name,
            "subscription_source_id": self.subscription_source_id,
            "reminder": self.reminder,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CalendarEvent':
        """Rebuild an event from its stored form, hydrating timestamps."""
        return cls(
            id=data.get("id"),
            title=data["title"],
            description=data.get("description"),
            start_date=_parse_iso(data["start_date"]),
            end_date=_parse_iso(data.get("end_date")),
            all_day=bool(data.get("all_day", False)),
            type=EventType(data.get("type", EventType.PERSONAL.value)),
            color=data.get("color"),
            location=data.get("location"),
            course_id=data.get("course_id"),
            course_name=data.get("course_name"),
            subscription_source_id=data.get("subscription_source_id"),
            reminder=data.get("reminder"),
        )


EVENT_FIELDS = frozenset(f.name for f in dataclass_fields(CalendarEvent))


@dataclass
class CalendarSubscription:
    """A named remote calendar that is periodically re-materialized."""
    id: str
    name: str
    url: str
    color: str = field(default_factory=lambda: TYPE_COLORS[EventType.SUBSCRIPTION])
    last_synced_at: Optional[datetime] = None
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "color": self.color,
            "last_synced_at": _iso(self.last_synced_at),
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CalendarSubscription':
        return cls(
            id=data["id"],
            name=data["name"],
            url=data["url"],
            color=data.get("color") or TYPE_COLORS[EventType.SUBSCRIPTION],
            last_synced_at=_parse_iso(data.get("last_synced_at")),
            enabled=bool(data.get("enabled", True)),
        )


@dataclass
class ExamRecord:
    """
    The slice of an externally owned exam record that calendar derivation uses.

    Unknown keys of the stored record are kept in `extra` untouched.
    """
    id: str
    course: str
    date: str  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    location: Optional[str] = None
    notes: Optional[str] = None
    module_id: Optional[str] = None
    extra: dict = field(default_factory=dict, repr=False)

    _KNOWN = ("id", "course", "date", "time", "location", "notes", "moduleId")

    @classmethod
    def from_dict(cls, data: dict) -> 'ExamRecord':
        return cls(
            id=str(data["id"]),
            course=data.get("course", ""),
            date=data.get("date", ""),
            time=data.get("time") or None,
            location=data.get("location") or None,
            notes=data.get("notes") or None,
            module_id=data.get("moduleId"),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "course": self.course,
            "date": self.date,
            "time": self.time or "",
            "location": self.location or "",
            "notes": self.notes or "",
        })
        if self.module_id is not None:
            data["moduleId"] = self.module_id
        return data
