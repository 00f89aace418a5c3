"""
Bulk slot generation.

Expands a date range, a weekday selection and a list of time ranges into
concrete slot intervals. Uses python-dateutil rrule for the day iteration.

Weekdays follow the booking console convention: 0=Sunday ... 6=Saturday.

No overlap check is made against existing slots; callers that generate the
same grid twice get duplicate slots.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, rrule
from pydantic import BaseModel, Field, model_validator

# Mapping from console weekday (0=Sunday) to dateutil weekday constants
WEEKDAY_MAP = {
    0: SU,
    1: MO,
    2: TU,
    3: WE,
    4: TH,
    5: FR,
    6: SA,
}


class TimeRange(BaseModel):
    """One daily interval, e.g. 09:00-10:00."""

    start_hour: int = Field(..., ge=0, le=23)
    start_minute: int = Field(0, ge=0, le=59)
    end_hour: int = Field(..., ge=0, le=23)
    end_minute: int = Field(0, ge=0, le=59)

    @model_validator(mode="after")
    def check_end_after_start(self) -> "TimeRange":
        if (self.end_hour, self.end_minute) <= (self.start_hour, self.start_minute):
            raise ValueError("Time range must end after it starts")
        return self

    @property
    def start(self) -> time:
        return time(self.start_hour, self.start_minute)

    @property
    def end(self) -> time:
        return time(self.end_hour, self.end_minute)


def expand_days(start_date: date, end_date: date, weekdays: list[int]) -> list[date]:
    """
    Calendar days in [start_date, end_date] whose weekday is selected.

    Examples:
        # Mondays and Wednesdays of the week starting Sunday Jan 5, 2025
        expand_days(date(2025, 1, 5), date(2025, 1, 11), [1, 3])
        # Returns [date(2025, 1, 6), date(2025, 1, 8)]
    """
    if not weekdays or start_date > end_date:
        return []

    rule = rrule(
        DAILY,
        dtstart=datetime.combine(start_date, time.min),
        until=datetime.combine(end_date, time.min),
        byweekday=[WEEKDAY_MAP[d] for d in sorted(set(weekdays))],
    )
    return [dt.date() for dt in rule]


def generate_slot_times(
    start_date: date,
    end_date: date,
    weekdays: list[int],
    time_ranges: list[TimeRange],
    tz: ZoneInfo,
) -> list[tuple[datetime, datetime]]:
    """
    Expand the grid into (start, end) pairs, timezone-aware in tz.

    One pair per selected day per time range, ordered by day then by the
    order of time_ranges.
    """
    slots: list[tuple[datetime, datetime]] = []
    for day in expand_days(start_date, end_date, weekdays):
        for time_range in time_ranges:
            slots.append(
                (
                    datetime.combine(day, time_range.start, tzinfo=tz),
                    datetime.combine(day, time_range.end, tzinfo=tz),
                )
            )
    return slots
