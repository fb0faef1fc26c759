"""
Centralized timezone utilities for consistent timestamp handling.

All timestamps are stored as naive UTC datetimes (datetime.utcnow()).
Calendar decisions that a user perceives as "today" (budget periods,
deadline reminders, default statistics year) use the configured local
timezone instead.

Frontend JavaScript parses timestamps with 'Z' suffix as UTC and
automatically converts to the user's local timezone for display.
"""

from datetime import date, datetime, time
import pytz

from app.core.config import settings

UTC = pytz.UTC


def local_timezone():
    """Timezone used for user-facing calendar dates."""
    return pytz.timezone(settings.TIMEZONE)


def format_datetime_for_api(dt: datetime) -> str | None:
    """
    Convert a datetime to UTC ISO string for API responses.

    Naive datetimes are assumed to be UTC. Returns format:
    "2026-01-06T20:43:50.245704Z", or None if dt is None.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        utc_dt = dt.astimezone(UTC)
        return utc_dt.isoformat().replace('+00:00', 'Z')

    return dt.isoformat() + 'Z'


def format_date_for_api(value: date) -> str | None:
    """ISO date string or None."""
    return value.isoformat() if value else None


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored columns."""
    return datetime.utcnow()


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize an incoming datetime to the naive UTC storage convention."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def local_today() -> date:
    """Today's date in the configured local timezone."""
    return datetime.now(local_timezone()).date()


def local_day_start(day: date) -> datetime:
    """Midnight of a local calendar day, as naive UTC for querying stored columns."""
    return to_naive_utc(local_timezone().localize(datetime.combine(day, time.min)))


def to_local_date(dt: datetime) -> date:
    """Local calendar date of a stored (naive UTC) timestamp."""
    if dt.tzinfo is None:
        dt = UTC.localize(dt)
    return dt.astimezone(local_timezone()).date()
