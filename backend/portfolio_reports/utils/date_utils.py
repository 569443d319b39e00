# backend/portfolio_reports/utils/date_utils.py
"""
Date utility functions for Portfolio Reports.

Calendar helpers shared by the metrics engine and the HTTP layer.
Centralizing these keeps month and quarter numbering consistent between
computation and display.

Usage:
    from portfolio_reports.utils.date_utils import quarter_of

    quarter = quarter_of(record.date)
"""

from datetime import date

MONTH_NAMES: tuple[str, ...] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

QUARTER_KEYS: tuple[str, ...] = ("q1", "q2", "q3", "q4")


def quarter_of(d: date) -> int:
    """
    Get the calendar quarter (1-4) of a date.

    Example:
        >>> quarter_of(date(2024, 5, 17))
        2
    """
    return (d.month - 1) // 3 + 1


def in_range(d: date, start_date: date | None, end_date: date | None) -> bool:
    """
    Check if a date falls inside an optional inclusive range.

    Missing bounds are open.
    """
    if start_date is not None and d < start_date:
        return False
    if end_date is not None and d > end_date:
        return False
    return True
