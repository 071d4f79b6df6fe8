"""
Unifyer Calendar

Calendar backend of the Unifyer academic organizer:
- Configuration parsing (config.py)
- iCalendar parsing (ical.py)
- Event storage and merge rules (storage.py, event_store.py)
- Exam-derived events (exams.py)
- File import and subscriptions (importer.py, subscriptions.py)
- Unified service (service.py) and view projections (projections.py)
"""

from .config import Config
from .errors import (
    CalendarError,
    InvalidFileTypeError,
    InvalidFormatError,
    MalformedPropertyError,
    NetworkError,
    ReadOnlyEventError,
)
from .event_store import EventStore
from .ical import EventBlockParser, ParseResult, decode_datetime, parse_events, unescape_text, unfold_lines
from .models import CalendarEvent, CalendarSubscription, EventType, ExamRecord
from .service import CalendarService
from .storage import JsonStorage, MemoryStorage, StorageBackend
from .subscriptions import SubscriptionFetcher, SubscriptionManager, SyncEngine, SyncResult

__version__ = "0.1.0"

__all__ = [
    'Config',
    'CalendarError',
    'InvalidFileTypeError',
    'InvalidFormatError',
    'MalformedPropertyError',
    'NetworkError',
    'ReadOnlyEventError',
    'EventStore',
    'EventBlockParser',
    'ParseResult',
    'decode_datetime',
    'parse_events',
    'unescape_text',
    'unfold_lines',
    'CalendarEvent',
    'CalendarSubscription',
    'EventType',
    'ExamRecord',
    'CalendarService',
    'JsonStorage',
    'MemoryStorage',
    'StorageBackend',
    'SubscriptionFetcher',
    'SubscriptionManager',
    'SyncEngine',
    'SyncResult',
]
