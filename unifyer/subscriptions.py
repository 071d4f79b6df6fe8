"""
Calendar subscriptions: registry, remote fetching and sync.

A subscription is a named remote calendar URL. Every successful sync
re-parses the whole remote document and replaces the subscription's events
in the Event Store, so the local copy shrinks when the remote calendar does.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from .errors import CalendarError, InvalidFormatError, NetworkError
from .event_store import EventStore
from .ical import contains_calendar, parse_events
from .models import CalendarEvent, CalendarSubscription, EventType, TYPE_COLORS, generate_id
from .storage import StorageBackend, SUBSCRIPTIONS
from .sync_worker import SyncWorker
from .timezone_utils import now_utc

logger = logging.getLogger(__name__)


ACCEPTED_SCHEMES = ("http", "https", "webcal", "webcals")


def validate_url(url: str) -> str:
    """
    Check that a subscription URL is well formed. Reachability is not checked.

    Returns:
        The URL with surrounding whitespace removed.

    Raises:
        ValueError: unsupported scheme or missing host.
    """
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ACCEPTED_SCHEMES:
        raise ValueError(f"Unsupported URL scheme: {url!r}")
    if not parsed.netloc:
        raise ValueError(f"URL has no host: {url!r}")
    return url


def fetchable_url(url: str) -> str:
    """Map webcal:// style URLs to the https URL that serves them."""
    parsed = urlparse(url)
    if parsed.scheme.lower() in ("webcal", "webcals"):
        return parsed._replace(scheme="https").geturl()
    return url


class SubscriptionFetcher:
    """Retrieves remote calendar documents over HTTP(S)."""

    def __init__(self, timeout: int = 30, user_agent: str = "Unifyer-Calendar/1.0",
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session or requests.Session()

    def fetch(self, url: str) -> str:
        """
        Fetch the calendar text at a URL.

        Raises:
            NetworkError: transport failure, timeout or a non-2xx status.
        """
        target = fetchable_url(url)
        try:
            response = self._session.get(
                target,
                timeout=self.timeout,
                headers={
                    'User-Agent': self.user_agent,
                    'Accept': 'text/calendar'
                }
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(url, str(e)) from e

        # Calendar feeds often omit the charset
        response.encoding = 'utf-8'
        return response.text


class SubscriptionManager:
    """
    Registry of subscriptions persisted in the "subscriptions" collection.

    Deleting a subscription also deletes its events from the Event Store.
    """

    def __init__(self, storage: StorageBackend, store: EventStore, owner: str = "local"):
        self._storage = storage
        self._store = store
        self._owner = owner
        self._lock = threading.RLock()

    def _load(self) -> list[CalendarSubscription]:
        subscriptions = []
        for record in self._storage.load_collection(self._owner, SUBSCRIPTIONS):
            try:
                subscriptions.append(CalendarSubscription.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.error("Error loading subscription %s: %s", record.get("id"), e)
        return subscriptions

    def _save(self, subscriptions: list[CalendarSubscription]) -> None:
        self._storage.save_collection(
            self._owner, SUBSCRIPTIONS, [s.to_dict() for s in subscriptions]
        )

    def _modify(self, subscription_id: str,
                change: Callable[[CalendarSubscription], None]) -> Optional[CalendarSubscription]:
        with self._lock:
            subscriptions = self._load()
            for sub in subscriptions:
                if sub.id == subscription_id:
                    change(sub)
                    self._save(subscriptions)
                    return sub
        return None

    def create(self, name: str, url: str, color: Optional[str] = None,
               enabled: bool = True) -> CalendarSubscription:
        """
        Register a new subscription.

        Raises:
            ValueError: empty name or malformed URL.
        """
        name = name.strip()
        if not name:
            raise ValueError("Subscription name is required")
        subscription = CalendarSubscription(
            id=generate_id("sub"),
            name=name,
            url=validate_url(url),
            color=color or TYPE_COLORS[EventType.SUBSCRIPTION],
            enabled=enabled,
        )
        with self._lock:
            subscriptions = self._load()
            subscriptions.append(subscription)
            self._save(subscriptions)
        logger.info("Added subscription %s (%s)", subscription.name, subscription.url)
        return subscription

    def get(self, subscription_id: str) -> Optional[CalendarSubscription]:
        with self._lock:
            for sub in self._load():
                if sub.id == subscription_id:
                    return sub
        return None

    def find_by_url(self, url: str) -> Optional[CalendarSubscription]:
        url = url.strip()
        for sub in self.list():
            if sub.url == url:
                return sub
        return None

    def exists(self, subscription_id: str) -> bool:
        return self.get(subscription_id) is not None

    def set_enabled(self, subscription_id: str, enabled: bool) -> Optional[CalendarSubscription]:
        def change(sub: CalendarSubscription) -> None:
            sub.enabled = enabled
        return self._modify(subscription_id, change)

    def mark_synced(self, subscription_id: str,
                    when: Optional[datetime] = None) -> Optional[CalendarSubscription]:
        """Stamp the last successful sync time."""
        stamp = when or now_utc()

        def change(sub: CalendarSubscription) -> None:
            sub.last_synced_at = stamp
        return self._modify(subscription_id, change)

    def delete(self, subscription_id: str) -> bool:
        """
        Remove a subscription and cascade-delete its events.

        Holds the subscription's event lock, so a sync in flight either
        commits before the removal or sees the subscription gone.
        """
        with self._store.subscription_lock(subscription_id):
            with self._lock:
                subscriptions = self._load()
                kept = [s for s in subscriptions if s.id != subscription_id]
                if len(kept) == len(subscriptions):
                    return False
                self._save(kept)
            removed = self._store.delete_subscription_events(subscription_id)
        self._store.forget_subscription_lock(subscription_id)
        logger.info("Deleted subscription %s and %d events", subscription_id, removed)
        return True

    def list(self) -> "list[CalendarSubscription]":
        with self._lock:
            return self._load()


@dataclass
class SyncResult:
    """Outcome of syncing one subscription."""
    subscription_id: str
    events: Optional[list[CalendarEvent]] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class SyncEngine:
    """
    Fetches, validates, parses and stores subscription calendars.

    A sync touches the Event Store only after the document was fetched and
    carries the VCALENDAR marker; the replacement itself is atomic per
    subscription.
    """

    def __init__(self, manager: SubscriptionManager, store: EventStore,
                 fetcher: Optional[SubscriptionFetcher] = None, max_workers: int = 3):
        self.manager = manager
        self.store = store
        self.fetcher = fetcher or SubscriptionFetcher()
        self.max_workers = max_workers

    def sync(self, subscription: CalendarSubscription) -> Optional[list[CalendarEvent]]:
        """
        Re-materialize one subscription.

        Returns:
            The newly stored events; None if the subscription is disabled or
            was deleted while the fetch was in flight.

        Raises:
            NetworkError: the fetch failed.
            InvalidFormatError: the document is not a calendar.
        """
        if not subscription.enabled:
            logger.info("Subscription %s is disabled, skipping", subscription.name)
            return None

        logger.info("Syncing subscription %s from %s", subscription.name, subscription.url)
        text = self.fetcher.fetch(subscription.url)
        if not contains_calendar(text):
            raise InvalidFormatError(subscription.url)

        result = parse_events(
            text,
            EventType.SUBSCRIPTION,
            subscription.color,
            subscription.id,
        )

        with self.store.subscription_lock(subscription.id):
            if not self.manager.exists(subscription.id):
                logger.info("Subscription %s was deleted during sync, discarding", subscription.id)
                return None
            stored = self.store.replace_subscription_events(subscription.id, result.events)
            self.manager.mark_synced(subscription.id)

        logger.info(
            "Synced %s: %d events (%d dropped, %d warnings)",
            subscription.name, len(stored), result.dropped, len(result.warnings),
        )
        return stored

    def sync_one(self, subscription: CalendarSubscription) -> SyncResult:
        """Sync one subscription, reporting failure in the result instead of raising."""
        try:
            events = self.sync(subscription)
        except CalendarError as e:
            logger.warning("Sync of %s failed: %s", subscription.name, e)
            return SyncResult(subscription.id, error=str(e))
        return SyncResult(subscription.id, events=events, skipped=events is None)

    def sync_all(self) -> dict[str, SyncResult]:
        """
        Sync every enabled subscription concurrently.

        One subscription failing never stops the others.

        Returns:
            Dict mapping subscription ID to its SyncResult.
        """
        results: dict[str, SyncResult] = {}
        lock = threading.Lock()

        def on_error(subscription_id: str, message: str) -> None:
            with lock:
                results[subscription_id] = SyncResult(subscription_id, error=message)

        def on_finished(subscription_id: str, result: SyncResult) -> None:
            with lock:
                results[subscription_id] = result

        subscriptions = self.manager.list()
        with SyncWorker(self.max_workers, on_finished=on_finished, on_error=on_error) as worker:
            for sub in subscriptions:
                if not sub.enabled:
                    with lock:
                        results[sub.id] = SyncResult(sub.id, skipped=True)
                    continue
                worker.submit(sub.id, self.sync_one, sub)

        failed = sum(1 for r in results.values() if not r.ok)
        logger.info("Synced %d subscriptions, %d failed", len(subscriptions), failed)
        return results
