"""Property-based tests for week bucketing.

**Feature: weekly-journal**
"""

from datetime import date, datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from weekjournal.dates import (
    parse_week_key,
    shift_week,
    to_local_midnight,
    week_bounds,
    week_end,
    week_key,
    week_start,
)

dates = st.dates(min_value=date(1970, 1, 5), max_value=date(2200, 12, 31))


class TestWeekBucketing:
    """
    **Feature: weekly-journal, Property 1: Week Bucketing**

    *For any* date, its week starts on the Monday on or before it and ends
    six days later on a Sunday.
    """

    @given(day=dates)
    @settings(max_examples=200)
    def test_week_contains_date(self, day: date):
        start, end = week_bounds(day)

        assert start.weekday() == 0
        assert end.weekday() == 6
        assert end - start == timedelta(days=6)
        assert start <= day <= end

    @given(day=dates)
    @settings(max_examples=100)
    def test_every_day_of_week_shares_key(self, day: date):
        monday = week_start(day)
        keys = {week_key(monday + timedelta(days=offset)) for offset in range(7)}

        assert keys == {week_key(day)}

    @given(day=dates)
    @settings(max_examples=100)
    def test_key_round_trips_through_parse(self, day: date):
        start, end = parse_week_key(week_key(day))

        assert start == week_start(day)
        assert end == week_end(day)

    @given(
        day=dates,
        hour=st.integers(min_value=0, max_value=23),
        minute=st.integers(min_value=0, max_value=59),
    )
    @settings(max_examples=100)
    def test_time_of_day_is_ignored(self, day: date, hour: int, minute: int):
        moment = datetime(day.year, day.month, day.day, hour, minute)

        assert week_key(moment) == week_key(day)
        assert to_local_midnight(moment) == datetime(day.year, day.month, day.day)


class TestWeekKeyExamples:
    """Concrete week keys, including calendar edge cases."""

    def test_wednesday(self):
        assert week_key("2024-03-06") == "2024-03-04_2024-03-10"

    def test_monday_is_its_own_start(self):
        assert week_key("2024-03-04") == "2024-03-04_2024-03-10"

    def test_sunday_belongs_to_previous_monday(self):
        assert week_key("2024-03-10") == "2024-03-04_2024-03-10"

    def test_week_spanning_year_end(self):
        assert week_key("2025-01-01") == "2024-12-30_2025-01-05"

    def test_leap_day(self):
        assert week_key(date(2024, 2, 29)) == "2024-02-26_2024-03-03"

    def test_datetime_string_with_time(self):
        assert week_key("2024-03-06T23:30:00") == "2024-03-04_2024-03-10"

    def test_loose_string_parsed(self):
        assert week_key("March 6, 2024") == "2024-03-04_2024-03-10"


class TestInvalidInputFallsBackToNow:
    """
    **Feature: weekly-journal, Property 2: Lenient Date Input**

    *For any* unparseable input, helpers use the current date instead of
    raising.
    """

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", 12345])
    def test_fallback(self, value):
        now = datetime(2024, 3, 6, 15, 45)

        assert week_key(value, now=now) == "2024-03-04_2024-03-10"
        assert to_local_midnight(value, now=now) == datetime(2024, 3, 6)


class TestParseAndShift:
    """Parsing and moving between week keys."""

    @pytest.mark.parametrize(
        "key",
        [
            "2024-03-05_2024-03-11",  # starts on Tuesday
            "2024-03-04_2024-03-09",  # six-day span
            "2024-03-04",
            "garbage",
            "",
        ],
    )
    def test_invalid_keys_rejected(self, key: str):
        with pytest.raises(ValueError):
            parse_week_key(key)

    def test_shift_forward_and_back(self):
        assert shift_week("2024-03-04_2024-03-10", 1) == "2024-03-11_2024-03-17"
        assert shift_week("2024-03-04_2024-03-10", -1) == "2024-02-26_2024-03-03"

    @given(day=dates, weeks=st.integers(min_value=-100, max_value=100))
    @settings(max_examples=100)
    def test_shift_is_reversible(self, day: date, weeks: int):
        key = week_key(day)

        assert shift_week(shift_week(key, weeks), -weeks) == key
