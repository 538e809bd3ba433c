# tests/utils/test_date_utils.py
"""
Tests for calendar helpers.
"""

from datetime import date

import pytest

from portfolio_engine.utils.date_utils import default_window, iter_calendar_days, parse_iso_date


class TestIterCalendarDays:
    """Tests for iter_calendar_days."""

    def test_inclusive_range(self):
        days = iter_calendar_days(date(2024, 1, 30), date(2024, 2, 2))

        assert days == [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1), date(2024, 2, 2)]

    def test_includes_weekends(self):
        assert len(iter_calendar_days(date(2024, 1, 1), date(2024, 1, 14))) == 14

    def test_leap_day(self):
        assert date(2024, 2, 29) in iter_calendar_days(date(2024, 2, 28), date(2024, 3, 1))

    def test_single_day(self):
        assert iter_calendar_days(date(2024, 1, 1), date(2024, 1, 1)) == [date(2024, 1, 1)]

    def test_reversed_range_is_empty(self):
        assert iter_calendar_days(date(2024, 1, 2), date(2024, 1, 1)) == []


class TestDefaultWindow:
    """Tests for default_window."""

    def test_ninety_days(self):
        start, end = default_window(date(2024, 3, 31), 90)

        assert start == date(2024, 1, 2)
        assert end == date(2024, 3, 31)
        assert len(iter_calendar_days(start, end)) == 90

    def test_one_day(self):
        assert default_window(date(2024, 3, 31), 1) == (date(2024, 3, 31), date(2024, 3, 31))

    def test_invalid_length(self):
        with pytest.raises(ValueError, match="window_days"):
            default_window(date(2024, 3, 31), 0)


class TestParseIsoDate:
    """Tests for parse_iso_date."""

    def test_date_only(self):
        assert parse_iso_date("2024-01-15") == date(2024, 1, 15)

    def test_ignores_time(self):
        assert parse_iso_date(" 2024-01-15T16:00:00Z") == date(2024, 1, 15)
