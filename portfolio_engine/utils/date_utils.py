# portfolio_engine/utils/date_utils.py
"""
Calendar helpers for history windows.

History is reconstructed for every calendar day (not business days):
valuations still exist on weekends, they just forward-fill Friday's close.
"""

from datetime import date, timedelta


def iter_calendar_days(start_date: date, end_date: date) -> list[date]:
    """
    List every calendar day in [start_date, end_date], ascending.

    Returns an empty list when start_date > end_date.

    Example:
        >>> iter_calendar_days(date(2024, 1, 30), date(2024, 2, 1))
        [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1)]
    """
    days = []
    current = start_date

    while current <= end_date:
        days.append(current)
        current += timedelta(days=1)

    return days


def default_window(end_date: date, window_days: int) -> tuple[date, date]:
    """
    Window of `window_days` calendar days ending on end_date (inclusive).

    A 90-day window ending 2024-03-31 starts on 2024-01-02.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")
    return end_date - timedelta(days=window_days - 1), end_date


def parse_iso_date(value: str) -> date:
    """Parse 'YYYY-MM-DD' (ignores any time component after the date)."""
    return date.fromisoformat(value.strip()[:10])
