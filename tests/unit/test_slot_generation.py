"""
Unit tests for slot_generation.py - Bulk slot expansion.

Tests coverage:
- expand_days(): weekday selection with 0=Sunday convention
- generate_slot_times(): one pair per day per time range, timezone-aware
- TimeRange validation
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from booking.services.slot_generation import (
    WEEKDAY_MAP,
    TimeRange,
    expand_days,
    generate_slot_times,
)

SAO_PAULO = ZoneInfo("America/Sao_Paulo")

# Sunday January 5, 2025 .. Saturday January 11, 2025
WEEK_START = date(2025, 1, 5)
WEEK_END = date(2025, 1, 11)


# ============================================================================
# expand_days
# ============================================================================


class TestExpandDays:
    """Test weekday filtering over a date range."""

    def test_monday_and_wednesday_of_one_week(self):
        """1=Monday and 3=Wednesday pick one day each in a full week."""
        assert expand_days(WEEK_START, WEEK_END, [1, 3]) == [date(2025, 1, 6), date(2025, 1, 8)]

    def test_zero_is_sunday(self):
        assert expand_days(WEEK_START, WEEK_END, [0]) == [date(2025, 1, 5)]

    def test_six_is_saturday(self):
        assert expand_days(WEEK_START, WEEK_END, [6]) == [date(2025, 1, 11)]

    def test_range_bounds_are_inclusive(self):
        assert expand_days(date(2025, 1, 6), date(2025, 1, 6), [1]) == [date(2025, 1, 6)]

    def test_no_matching_weekday_in_range(self):
        """Thursday..Saturday contains no Monday or Wednesday."""
        assert expand_days(date(2025, 1, 9), WEEK_END, [1, 3]) == []

    def test_empty_weekdays_selects_nothing(self):
        assert expand_days(WEEK_START, WEEK_END, []) == []

    def test_end_before_start_selects_nothing(self):
        assert expand_days(WEEK_END, WEEK_START, [0, 1, 2, 3, 4, 5, 6]) == []

    def test_duplicate_weekdays_do_not_duplicate_days(self):
        assert expand_days(WEEK_START, WEEK_END, [3, 3]) == [date(2025, 1, 8)]

    def test_weekday_map_covers_the_whole_week(self):
        assert sorted(WEEKDAY_MAP) == [0, 1, 2, 3, 4, 5, 6]


# ============================================================================
# generate_slot_times
# ============================================================================


class TestGenerateSlotTimes:
    """Test the full day x time range expansion."""

    def test_two_slots_for_monday_and_wednesday(self):
        ranges = [TimeRange(start_hour=9, end_hour=10)]

        slots = generate_slot_times(WEEK_START, WEEK_END, [1, 3], ranges, SAO_PAULO)

        assert slots == [
            (datetime(2025, 1, 6, 9, 0, tzinfo=SAO_PAULO), datetime(2025, 1, 6, 10, 0, tzinfo=SAO_PAULO)),
            (datetime(2025, 1, 8, 9, 0, tzinfo=SAO_PAULO), datetime(2025, 1, 8, 10, 0, tzinfo=SAO_PAULO)),
        ]

    def test_no_slots_when_range_misses_the_weekdays(self):
        ranges = [TimeRange(start_hour=9, end_hour=10)]
        assert generate_slot_times(date(2025, 1, 9), WEEK_END, [1, 3], ranges, SAO_PAULO) == []

    def test_every_range_on_every_day(self):
        ranges = [
            TimeRange(start_hour=9, end_hour=9, end_minute=30),
            TimeRange(start_hour=14, start_minute=15, end_hour=15),
        ]

        slots = generate_slot_times(WEEK_START, WEEK_END, [1, 3], ranges, SAO_PAULO)

        assert len(slots) == 4
        assert slots[0][0].hour == 9 and slots[0][1].minute == 30
        assert slots[1][0].hour == 14 and slots[1][0].minute == 15
        assert slots[2][0].date() == date(2025, 1, 8)

    def test_slots_carry_the_given_timezone(self):
        ranges = [TimeRange(start_hour=9, end_hour=10)]
        start, end = generate_slot_times(WEEK_START, WEEK_END, [1], ranges, SAO_PAULO)[0]

        assert start.tzinfo == SAO_PAULO
        assert start.utcoffset() == end.utcoffset()

    def test_no_time_ranges_means_no_slots(self):
        assert generate_slot_times(WEEK_START, WEEK_END, [1, 3], [], SAO_PAULO) == []


# ============================================================================
# TimeRange
# ============================================================================


class TestTimeRange:
    """Test time range validation."""

    def test_minutes_default_to_zero(self):
        time_range = TimeRange(start_hour=8, end_hour=9)
        assert (time_range.start.minute, time_range.end.minute) == (0, 0)

    def test_end_must_be_after_start(self):
        with pytest.raises(ValidationError):
            TimeRange(start_hour=10, end_hour=9)

    def test_empty_range_is_rejected(self):
        with pytest.raises(ValidationError):
            TimeRange(start_hour=10, start_minute=30, end_hour=10, end_minute=30)

    def test_hour_out_of_bounds_is_rejected(self):
        with pytest.raises(ValidationError):
            TimeRange(start_hour=9, end_hour=24)
