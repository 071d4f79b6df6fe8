"""
Unified calendar service for Unifyer Calendar.

Provides a single interface over stored events, imported files, exam-derived
events and subscriptions. Front ends talk to this class only.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import Config, get_next_color
from .errors import ReadOnlyEventError
from .event_store import EventStore
from .exams import exam_events, load_exams
from .importer import import_calendar_file, import_calendar_path
from .models import (
    CalendarEvent, CalendarSubscription, EventType, ExamRecord, TYPE_EDITABLE, set_type_colors,
)
from .projections import sort_events, upcoming
from .storage import StorageBackend, create_storage_backend
from .subscriptions import SubscriptionFetcher, SubscriptionManager, SyncEngine, SyncResult
from .timezone_utils import set_timezone, to_local_datetime

logger = logging.getLogger(__name__)


class CalendarService:
    """
    Calendar facade combining the Event Store, exams and subscriptions.

    Read-only events (exam and subscription types) are listed like any other
    event but refused by the edit operations.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        storage: Optional[StorageBackend] = None,
        fetcher: Optional[SubscriptionFetcher] = None,
    ):
        self.config = config or Config()
        set_timezone(self.config.timezone)
        set_type_colors(self.config.colors)

        self.storage = storage or create_storage_backend(self.config.storage_dir)
        self.owner = self.config.owner
        self.store = EventStore(self.storage, self.owner)
        self.subscriptions = SubscriptionManager(self.storage, self.store, self.owner)
        if fetcher is None:
            fetcher = SubscriptionFetcher(
                timeout=self.config.sync.timeout,
                user_agent=self.config.sync.user_agent,
            )
        self.sync_engine = SyncEngine(
            self.subscriptions, self.store, fetcher, max_workers=self.config.sync.max_workers
        )

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> 'CalendarService':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ==================== Events ====================

    def exams(self) -> list[ExamRecord]:
        return load_exams(self.storage, self.owner)

    def events(self) -> list[CalendarEvent]:
        """Stored events merged with exam events, sorted by start."""
        derived = exam_events(self.exams())
        return sort_events(self.store.merge_with_derived(derived))

    def events_between(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Events overlapping [start, end)."""
        start = to_local_datetime(start)
        end = to_local_datetime(end)
        return [e for e in self.events() if e.start_date < end and e.effective_end > start]

    def get_event(self, event_id: str) -> Optional[CalendarEvent]:
        for event in self.events():
            if event.id == event_id:
                return event
        return None

    def upcoming(self, limit: int = 5, now: Optional[datetime] = None) -> list[CalendarEvent]:
        return upcoming(self.events(), now=now, limit=limit)

    def create_event(
        self,
        title: str,
        start_date: datetime,
        end_date: Optional[datetime] = None,
        type: EventType = EventType.PERSONAL,
        **fields,
    ) -> CalendarEvent:
        """
        Create a user-owned event.

        Naive datetimes are read as local time.

        Raises:
            ValueError: empty title.
            ReadOnlyEventError: the type belongs to another subsystem.
        """
        if not title or not title.strip():
            raise ValueError("Event title is required")
        if not TYPE_EDITABLE[type]:
            raise ReadOnlyEventError("(new)", type.value)
        if "id" in fields or "subscription_source_id" in fields:
            raise ValueError("id and subscription_source_id are assigned by the store")
        draft = CalendarEvent(
            title=title.strip(),
            start_date=to_local_datetime(start_date),
            end_date=to_local_datetime(end_date) if end_date else None,
            type=type,
            **fields,
        )
        return self.store.add(draft)

    def update_event(self, event_id: str, **fields) -> Optional[CalendarEvent]:
        """
        Update an editable event.

        Returns:
            The updated event, or None when the id is unknown.

        Raises:
            ValueError: empty title or missing start date.
            ReadOnlyEventError: the event (or its new type) is read-only.
        """
        event = self.get_event(event_id)
        if event is None:
            return None
        if not event.editable:
            raise ReadOnlyEventError(event_id, event.type.value)
        if "title" in fields:
            title = fields["title"]
            if not title or not title.strip():
                raise ValueError("Event title is required")
            fields["title"] = title.strip()
        if "start_date" in fields and fields["start_date"] is None:
            raise ValueError("Event start date is required")
        if "type" in fields:
            new_type = EventType(fields["type"])
            if not TYPE_EDITABLE[new_type]:
                raise ReadOnlyEventError(event_id, new_type.value)
            fields["type"] = new_type
        for name in ("start_date", "end_date"):
            if fields.get(name) is not None:
                fields[name] = to_local_datetime(fields[name])
        return self.store.update(event_id, **fields)

    def delete_event(self, event_id: str) -> bool:
        """
        Delete an editable event. False when the id is unknown.

        Raises:
            ReadOnlyEventError: exam and subscription events.
        """
        event = self.get_event(event_id)
        if event is None:
            return False
        if not event.editable:
            raise ReadOnlyEventError(event_id, event.type.value)
        return self.store.delete(event_id)

    # ==================== Import ====================

    def import_file(self, filename: str, content: str) -> list[CalendarEvent]:
        return import_calendar_file(self.store, filename, content)

    def import_path(self, path: Path) -> list[CalendarEvent]:
        return import_calendar_path(self.store, path)

    # ==================== Subscriptions ====================

    def seed_subscriptions(self) -> list[CalendarSubscription]:
        """Register subscriptions from the configuration that are not known yet."""
        added = []
        for sub_config in self.config.subscriptions:
            if not sub_config.url:
                logger.warning("Subscription %s has no url, skipping", sub_config.name)
                continue
            if self.subscriptions.find_by_url(sub_config.url):
                continue
            try:
                added.append(self.subscriptions.create(
                    sub_config.name,
                    sub_config.url,
                    sub_config.color or self._next_color(),
                    enabled=sub_config.enabled,
                ))
            except ValueError as e:
                logger.error("Invalid subscription %s: %s", sub_config.name, e)
        return added

    def _next_color(self) -> str:
        return get_next_color([s.color for s in self.subscriptions.list()])

    def add_subscription(
        self, name: str, url: str, color: Optional[str] = None
    ) -> tuple[CalendarSubscription, SyncResult]:
        """
        Create a subscription and immediately try one sync.

        A failed first sync is reported in the result; the subscription stays.
        """
        subscription = self.subscriptions.create(name, url, color or self._next_color())
        result = self.sync_engine.sync_one(subscription)
        return subscription, result

    def remove_subscription(self, subscription_id: str) -> bool:
        return self.subscriptions.delete(subscription_id)

    def sync_subscription(self, subscription_id: str) -> Optional[SyncResult]:
        """Sync one subscription by id. None when the id is unknown."""
        subscription = self.subscriptions.get(subscription_id)
        if subscription is None:
            return None
        return self.sync_engine.sync_one(subscription)

    def sync_all(self) -> dict[str, SyncResult]:
        return self.sync_engine.sync_all()
