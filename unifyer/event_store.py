"""
Event Store for Unifyer Calendar.

The persisted collection of user-owned, imported and subscription events.
Derived events (from exam records) are never stored; they are overlaid at
read time with merge_with_derived.
"""

import logging
import threading
from typing import Iterable, Optional

from .models import CalendarEvent, EventType, EVENT_FIELDS, generate_id
from .storage import StorageBackend, EVENTS

logger = logging.getLogger(__name__)


# Fields owned by the store or by the subscription subsystem
_PROTECTED_FIELDS = frozenset({"id", "subscription_source_id"})


class EventStore:
    """
    Event collection backed by a storage port.

    Each operation reads the collection, applies its change and writes it
    back before returning. Writes are serialized by a store-wide lock, and
    subscription replacement additionally holds a lock per subscription id
    so a sync never interleaves with another for the same subscription.
    """

    def __init__(self, storage: StorageBackend, owner: str = "local"):
        self._storage = storage
        self._owner = owner
        self._lock = threading.RLock()
        self._subscription_locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ==================== Persistence ====================

    def _load(self) -> list[CalendarEvent]:
        events = []
        for record in self._storage.load_collection(self._owner, EVENTS):
            try:
                events.append(CalendarEvent.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.error("Error loading event %s: %s", record.get("id"), e)
        return events

    def _save(self, events: list[CalendarEvent]) -> None:
        self._storage.save_collection(self._owner, EVENTS, [e.to_dict() for e in events])

    def subscription_lock(self, subscription_id: str) -> threading.RLock:
        """Lock serializing all writes to one subscription's events."""
        with self._locks_guard:
            lock = self._subscription_locks.get(subscription_id)
            if lock is None:
                lock = self._subscription_locks[subscription_id] = threading.RLock()
            return lock

    def forget_subscription_lock(self, subscription_id: str) -> None:
        """Drop the lock of a deleted subscription."""
        with self._locks_guard:
            self._subscription_locks.pop(subscription_id, None)

    # ==================== Queries ====================

    def get(self, event_id: str) -> Optional[CalendarEvent]:
        for event in self.list():
            if event.id == event_id:
                return event
        return None

    def count(self) -> int:
        return len(self.list())

    # ==================== CRUD Operations ====================

    def add(self, draft: CalendarEvent) -> CalendarEvent:
        """Store a draft under a fresh id. Never deduplicates."""
        return self.add_many([draft])[0]

    def add_many(self, drafts: Iterable[CalendarEvent]) -> list[CalendarEvent]:
        created = [d.with_changes(id=generate_id()) for d in drafts]
        with self._lock:
            events = self._load()
            events.extend(created)
            self._save(events)
        logger.debug("Added %d events", len(created))
        return created

    def update(self, event_id: str, **fields) -> Optional[CalendarEvent]:
        """
        Merge fields over a stored event.

        Returns:
            The updated event, or None when no event has that id.

        Raises:
            ValueError: unknown field names, fields the store owns, or an
                empty title or start date.
        """
        unknown = set(fields) - EVENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown event fields: {sorted(unknown)}")
        protected = set(fields) & _PROTECTED_FIELDS
        if protected:
            raise ValueError(f"Fields cannot be updated: {sorted(protected)}")
        if "title" in fields and not (fields["title"] or "").strip():
            raise ValueError("Event title is required")
        if "start_date" in fields and fields["start_date"] is None:
            raise ValueError("Event start date is required")
        if "type" in fields and not isinstance(fields["type"], EventType):
            fields["type"] = EventType(fields["type"])

        with self._lock:
            events = self._load()
            for i, event in enumerate(events):
                if event.id == event_id:
                    events[i] = event.with_changes(**fields)
                    self._save(events)
                    return events[i]
        logger.debug("update(%s): no such event", event_id)
        return None

    def delete(self, event_id: str) -> bool:
        """Remove exactly one event. False when the id is unknown."""
        with self._lock:
            events = self._load()
            for i, event in enumerate(events):
                if event.id == event_id:
                    del events[i]
                    self._save(events)
                    return True
        logger.debug("delete(%s): no such event", event_id)
        return False

    # ==================== Subscriptions ====================

    def replace_subscription_events(
        self,
        subscription_id: str,
        drafts: Iterable[CalendarEvent],
    ) -> list[CalendarEvent]:
        """
        Swap a subscription's event set for a new one.

        All stored events of the subscription are removed and the drafts are
        added tagged with its id, in a single write. Repeated syncs therefore
        never accumulate duplicates or keep events the remote calendar dropped.
        """
        created = [
            d.with_changes(id=generate_id(), subscription_source_id=subscription_id)
            for d in drafts
        ]
        with self.subscription_lock(subscription_id), self._lock:
            events = self._load()
            kept = [e for e in events if e.subscription_source_id != subscription_id]
            removed = len(events) - len(kept)
            kept.extend(created)
            self._save(kept)
        logger.info("Subscription %s: replaced %d events with %d", subscription_id, removed, len(created))
        return created

    def delete_subscription_events(self, subscription_id: str) -> int:
        """Remove every event of a subscription. Returns the number removed."""
        with self.subscription_lock(subscription_id), self._lock:
            events = self._load()
            kept = [e for e in events if e.subscription_source_id != subscription_id]
            removed = len(events) - len(kept)
            if removed:
                self._save(kept)
        logger.info("Subscription %s: deleted %d events", subscription_id, removed)
        return removed

    # ==================== Derived Events ====================

    def merge_with_derived(
        self,
        derived: Iterable[CalendarEvent],
        stored: Optional[list[CalendarEvent]] = None,
    ) -> list[CalendarEvent]:
        """
        Overlay derived events on the stored ones.

        Derived events are indexed by id; a stored event sharing an id with a
        derived one is replaced by it, so an edited exam always wins over a
        stale stored copy.
        """
        if stored is None:
            stored = self.list()
        derived_by_id = {e.id: e for e in derived}
        merged = [e for e in stored if e.id not in derived_by_id]
        merged.extend(derived_by_id.values())
        return merged

    # Defined last: inside the class body the name shadows the builtin used
    # in the annotations above.
    def list(self) -> "list[CalendarEvent]":
        """All stored events with their dates hydrated. Order is not significant."""
        with self._lock:
            return self._load()
