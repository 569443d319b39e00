# backend/portfolio_reports/services/metrics/buckets.py
"""
Calendar-bucketed P&L tables (monthly and quarterly).

Each bucket chains its start NAV from the previous bucket's end NAV:

    start_nav_i = end_nav_{i-1}        (start_nav_0 = anchor NAV)
    percent_i   = (end_nav_i - start_nav_i) / start_nav_i * 100

Yearly totals compound the bucket returns rather than adding them:

    total = (prod(1 + r_i / 100) - 1) * 100

Each r_i enters the product at display precision (2 dp, half-up) so the
total reproduces the table a reader sees. A year with no valid bucket has
total None ("no data"), which is not the same as a computed 0.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from portfolio_reports.services.constants import DISPLAY_PRECISION, HUNDRED, ONE, ZERO
from portfolio_reports.services.metrics.types import (
    CalendarBucket,
    DatedRecord,
    YearlyBuckets,
)
from portfolio_reports.utils.date_utils import quarter_of

logger = logging.getLogger(__name__)

BucketOverrides = Mapping[tuple[int, int], Decimal | None]


def round_display(value: Decimal) -> Decimal:
    """Round to display precision (2 dp, half-up)."""
    return value.quantize(DISPLAY_PRECISION, rounding=ROUND_HALF_UP)


def compound_percents(percents: Sequence[Decimal | None]) -> Decimal | None:
    """
    Compound period returns (in percent) into one total return.

    Args:
        percents: Sub-period returns; None entries are skipped

    Returns:
        Compounded return in percent, None if no entry was valid,
        exactly 0 when the product is exactly 1

    Example:
        >>> compound_percents([Decimal("10"), Decimal("-10")])
        Decimal('-1.0000')
    """
    product = ONE
    valid = 0

    for percent in percents:
        if percent is None:
            continue
        product *= ONE + round_display(percent) / HUNDRED
        valid += 1

    if valid == 0:
        return None
    if product == ONE:
        return ZERO
    return (product - ONE) * HUNDRED


def _bucket_percent(start_nav: Decimal | None, end_nav: Decimal | None) -> Decimal | None:
    if start_nav is None or end_nav is None or start_nav <= ZERO:
        return None
    return (end_nav - start_nav) / start_nav * HUNDRED


def _first_nav(series: Sequence[DatedRecord]) -> Decimal | None:
    for record in series:
        if record.nav is not None:
            return record.nav
    return None


def _aggregate(
        series: Sequence[DatedRecord],
        period_of: Callable[[DatedRecord], int],
        anchor_nav: Decimal | None,
        overrides: BucketOverrides | None,
) -> dict[int, YearlyBuckets]:
    """Shared bucketing pass; period_of maps a record to its month or quarter."""
    if not series:
        return {}

    # Partition in date order; dict preserves insertion order
    partitions: dict[tuple[int, int], list[DatedRecord]] = {}
    for record in series:
        partitions.setdefault((record.date.year, period_of(record)), []).append(record)

    previous_end = anchor_nav if anchor_nav is not None else _first_nav(series)
    per_year: dict[int, list[CalendarBucket]] = {}

    for (year, period), records in partitions.items():
        cash = sum((r.pnl for r in records if r.pnl is not None), ZERO)
        capital = sum((r.capital_in_out for r in records if r.capital_in_out is not None), ZERO)

        navs = [r.nav for r in records if r.nav is not None]
        end_nav = navs[-1] if navs else previous_end
        start_nav = previous_end

        percent = _bucket_percent(start_nav, end_nav)
        if overrides and (year, period) in overrides:
            percent = overrides[(year, period)]

        per_year.setdefault(year, []).append(
            CalendarBucket(
                year=year,
                period=period,
                start_nav=start_nav,
                end_nav=end_nav,
                cash_pnl=cash,
                capital_in_out=capital,
                percent=percent,
            )
        )
        previous_end = end_nav

    result: dict[int, YearlyBuckets] = {}
    for year, buckets in per_year.items():
        result[year] = YearlyBuckets(
            year=year,
            buckets={b.period: b for b in buckets},
            total_percent=compound_percents([b.percent for b in buckets]),
            total_cash=sum((b.cash_pnl for b in buckets), ZERO),
            total_capital_in_out=sum((b.capital_in_out for b in buckets), ZERO),
        )

    logger.debug(f"Aggregated {len(series)} records into {len(partitions)} buckets")
    return result


def aggregate_monthly(
        series: Sequence[DatedRecord],
        anchor_nav: Decimal | None = None,
        overrides: BucketOverrides | None = None,
) -> dict[int, YearlyBuckets]:
    """
    Build the monthly P&L table.

    Args:
        series: Ascending DatedSeries
        anchor_nav: Start NAV of the first month (defaults to the first NAV)
        overrides: (year, month) -> percent, applied before yearly totals

    Returns:
        Year -> YearlyBuckets keyed by month number (1-12)
    """
    return _aggregate(series, lambda r: r.date.month, anchor_nav, overrides)


def aggregate_quarterly(
        series: Sequence[DatedRecord],
        anchor_nav: Decimal | None = None,
        overrides: BucketOverrides | None = None,
) -> dict[int, YearlyBuckets]:
    """
    Build the quarterly P&L table.

    Quarter returns are taken from chained quarter-end NAVs directly, not
    from the compounded months.
    """
    return _aggregate(series, lambda r: quarter_of(r.date), anchor_nav, overrides)
