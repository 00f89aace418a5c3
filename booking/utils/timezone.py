"""
Timezone helpers.

Datetimes are written to the database in UTC. Values coming from callers
without tzinfo are wall-clock times in the configured TIMEZONE; values coming
back from the database without tzinfo (SQLite) are UTC.
"""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from shared.config import get_settings


def get_local_tz() -> ZoneInfo:
    """Configured business timezone."""
    return ZoneInfo(get_settings().TIMEZONE)


def to_utc(dt: datetime) -> datetime:
    """Normalize a caller-supplied datetime to UTC (naive means local time)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=get_local_tz())
    return dt.astimezone(UTC)


def from_db(dt: datetime) -> datetime:
    """Convert a stored datetime to the local timezone (naive means UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(get_local_tz())


def day_bounds_utc(day: date) -> tuple[datetime, datetime]:
    """
    Half-open [start-of-day, start-of-next-day) in UTC for a local calendar day.

    Computed from local midnights so DST days keep their real length.
    """
    tz = get_local_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def format_time(dt: datetime) -> str:
    """Display time of a stored datetime, e.g. '09:30'."""
    return from_db(dt).strftime("%H:%M")
