"""Shared fixtures for the calendar tests."""
import pytest
import pytz

from unifyer.config import Config
from unifyer.event_store import EventStore
from unifyer.models import set_type_colors
from unifyer.service import CalendarService
from unifyer.storage import MemoryStorage
from unifyer.subscriptions import SubscriptionFetcher, SubscriptionManager, SyncEngine
from unifyer.timezone_utils import set_timezone


LOCAL_TZ_NAME = "America/New_York"

SAMPLE_ICS = (
    "BEGIN:VCALENDAR\r\n"
    "VERSION:2.0\r\n"
    "PRODID:-//Test//Unifyer Test//EN\r\n"
    "BEGIN:VEVENT\r\n"
    "SUMMARY:Midterm\\, Calc III\r\n"
    "DTSTART;VALUE=DATE:20250522\r\n"
    "LOCATION:Main Hall A\r\n"
    "END:VEVENT\r\n"
    "BEGIN:VEVENT\r\n"
    "SUMMARY:Lecture\r\n"
    "DTSTART:20250523T130000Z\r\n"
    "DTEND:20250523T143000Z\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)


def make_ics(*titles: str) -> str:
    """A calendar with one timed UTC event per title, on consecutive days."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0"]
    for i, title in enumerate(titles, start=1):
        lines += [
            "BEGIN:VEVENT",
            f"SUMMARY:{title}",
            f"DTSTART:202506{i:02d}T090000Z",
            f"DTEND:202506{i:02d}T100000Z",
            "END:VEVENT",
        ]
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture(autouse=True)
def local_timezone():
    """Pin local time so date decoding is deterministic."""
    set_timezone(LOCAL_TZ_NAME)
    yield pytz.timezone(LOCAL_TZ_NAME)
    set_timezone(None)


@pytest.fixture(autouse=True)
def default_palette():
    """Restore the default type colors after tests that override them."""
    yield
    set_type_colors({})


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return EventStore(storage, owner="tester")


@pytest.fixture
def manager(storage, store):
    return SubscriptionManager(storage, store, owner="tester")


@pytest.fixture
def engine(manager, store):
    return SyncEngine(manager, store, SubscriptionFetcher(timeout=5))


@pytest.fixture
def service(storage, tmp_path):
    config = Config(storage_dir=tmp_path, owner="tester", timezone=LOCAL_TZ_NAME)
    return CalendarService(config, storage=storage)
