"""
Utility functions shared by repositories and transaction handlers.

- timezone: UTC storage / local display conversions
"""

from booking.utils.timezone import (
    day_bounds_utc,
    format_time,
    from_db,
    get_local_tz,
    to_utc,
)

__all__ = [
    "day_bounds_utc",
    "format_time",
    "from_db",
    "get_local_tz",
    "to_utc",
]
