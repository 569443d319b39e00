# backend/portfolio_reports/services/metrics/resolver.py
"""
Nearest-date lookup over an ordered series.

Works on any sequence of objects exposing a ``date`` attribute
(DatedRecord, EquityCurvePoint), sorted ascending with unique dates.
Lookups are binary searches, so trailing-return windows stay cheap on
multi-year daily histories.
"""

import bisect
from collections.abc import Sequence
from datetime import date
from typing import Protocol, TypeVar

from portfolio_reports.services.metrics.types import DatedRecord, Direction


class _Dated(Protocol):
    @property
    def date(self) -> date: ...


T = TypeVar("T", bound=_Dated)


def ensure_ordered(records: Sequence[DatedRecord]) -> tuple[DatedRecord, ...]:
    """
    Return records sorted ascending by date with unique dates.

    When the source yields several records for one date, the last one
    wins. The input is not modified.
    """
    by_date: dict[date, DatedRecord] = {}
    for record in records:
        by_date[record.date] = record
    return tuple(by_date[d] for d in sorted(by_date))


def resolve(series: Sequence[T], target_date: date, direction: Direction) -> T | None:
    """
    Find the record matching target_date under the given direction policy.

    Args:
        series: Ascending, unique-dated sequence
        target_date: Date to match
        direction: ON_OR_BEFORE, ON_OR_AFTER or CLOSEST

    Returns:
        The matching element, or None (always None for an empty series)
    """
    if not series:
        return None

    dates = [item.date for item in series]

    if direction == Direction.ON_OR_BEFORE:
        index = bisect.bisect_right(dates, target_date) - 1
        return series[index] if index >= 0 else None

    if direction == Direction.ON_OR_AFTER:
        index = bisect.bisect_left(dates, target_date)
        return series[index] if index < len(series) else None

    before = resolve(series, target_date, Direction.ON_OR_BEFORE)
    after = resolve(series, target_date, Direction.ON_OR_AFTER)

    if before is None:
        return after
    if after is None:
        return before

    before_gap = (target_date - before.date).days
    after_gap = (after.date - target_date).days
    return before if before_gap <= after_gap else after
