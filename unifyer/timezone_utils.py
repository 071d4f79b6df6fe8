"""
Timezone utilities for Unifyer Calendar.

Calendar data distinguishes only two kinds of wall clock: UTC (tokens with a
trailing Z) and "local" (everything else). Local means the timezone
configured for the application, resolved through pytz.
"""

from datetime import datetime, date, time
import time as _time
import logging
from typing import Optional

import pytz

logger = logging.getLogger(__name__)


# None means: derive from the operating system
_local_timezone_name: Optional[str] = None


def set_timezone(timezone_name: Optional[str]) -> None:
    """Set the local timezone for the application."""
    global _local_timezone_name
    _local_timezone_name = timezone_name


def get_local_timezone():
    """
    Get the local timezone as a pytz timezone object.

    Returns:
        pytz timezone object for the configured local timezone, or a fixed
        offset zone matching the operating system when none is configured.
    """
    if _local_timezone_name:
        try:
            return pytz.timezone(_local_timezone_name)
        except pytz.UnknownTimeZoneError:
            logger.warning("Unknown timezone %r, using system offset", _local_timezone_name)

    try:
        return pytz.timezone(_time.tzname[0])
    except pytz.UnknownTimeZoneError:
        is_dst = _time.localtime().tm_isdst
        if is_dst:
            offset_seconds = -_time.altzone
        else:
            offset_seconds = -_time.timezone
        return pytz.FixedOffset(offset_seconds // 60)


def make_local(year: int, month: int, day: int,
               hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Build an aware datetime from wall-clock fields in the local timezone."""
    naive = datetime(year, month, day, hour, minute, second)
    return get_local_timezone().localize(naive)


def make_utc(year: int, month: int, day: int,
             hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Build an aware datetime from wall-clock fields in UTC."""
    return datetime(year, month, day, hour, minute, second, tzinfo=pytz.UTC)


def local_midnight(day: date) -> datetime:
    """Local midnight at the start of a calendar date."""
    return get_local_timezone().localize(datetime.combine(day, time.min))


def to_local_datetime(dt: datetime) -> datetime:
    """
    Convert a datetime to the local timezone.

    Naive datetimes are taken to be local already and get localized.
    """
    local_tz = get_local_timezone()
    if dt.tzinfo is None:
        return local_tz.localize(dt)
    return dt.astimezone(local_tz)


def local_date(dt: datetime) -> date:
    """Calendar date of a datetime as seen in the local timezone."""
    return to_local_datetime(dt).date()


def now_utc() -> datetime:
    return datetime.now(pytz.UTC)
