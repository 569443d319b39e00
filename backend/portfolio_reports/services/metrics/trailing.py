# backend/portfolio_reports/services/metrics/trailing.py
"""
Trailing returns over fixed lookback windows.

For every window the reference point ("now") is the last point of the
equity curve. The comparison point is found with the nearest-date
resolver:

    target = latest.date - window_days
    point  = on-or-before(target), or closest(target) when nothing precedes it

The window reports "no data" (None) when:
    - no comparison point exists
    - the point found is further than the staleness tolerance from target
      (7 days for windows up to one month, 30 days for longer windows)
    - the point found is the reference point itself

Since inception compares against the first point of the curve.
MDD and current drawdown come from the drawdown tracker, not the resolver.
"""

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

from portfolio_reports.services.constants import (
    LONG_WINDOW_TOLERANCE_DAYS,
    SHORT_WINDOW_MAX_DAYS,
    SHORT_WINDOW_TOLERANCE_DAYS,
    TRAILING_WINDOWS,
)
from portfolio_reports.services.metrics.drawdown import compute_drawdown_curve
from portfolio_reports.services.metrics.resolver import resolve
from portfolio_reports.services.metrics.returns import compute_return
from portfolio_reports.services.metrics.types import (
    Direction,
    DrawdownSummary,
    EquityCurvePoint,
    TrailingReturns,
)

logger = logging.getLogger(__name__)


def staleness_tolerance(window_days: int) -> int:
    """Maximum accepted gap (days) between target date and point found."""
    if window_days <= SHORT_WINDOW_MAX_DAYS:
        return SHORT_WINDOW_TOLERANCE_DAYS
    return LONG_WINDOW_TOLERANCE_DAYS


def compute_window_return(
        equity_curve: Sequence[EquityCurvePoint],
        window_days: int,
) -> Decimal | None:
    """
    Calculate the trailing return for one fixed window.

    Args:
        equity_curve: Ascending equity curve
        window_days: Lookback in calendar days

    Returns:
        Return in percent, or None when the window has no usable data
    """
    if not equity_curve:
        return None

    latest = equity_curve[-1]
    target_date = latest.date - timedelta(days=window_days)

    point = resolve(equity_curve, target_date, Direction.ON_OR_BEFORE)
    if point is None:
        point = resolve(equity_curve, target_date, Direction.CLOSEST)

    if point is None or point.date >= latest.date:
        return None

    gap = abs((point.date - target_date).days)
    if gap > staleness_tolerance(window_days):
        logger.debug(
            f"Window {window_days}d: nearest point {point.date} is {gap} days "
            f"from target {target_date}, rejected as stale"
        )
        return None

    return compute_return(point.value, latest.value, (latest.date - point.date).days)


def compute_since_inception(equity_curve: Sequence[EquityCurvePoint]) -> Decimal | None:
    """Return from the first to the last point of the curve, in percent."""
    if not equity_curve:
        return None

    first = equity_curve[0]
    latest = equity_curve[-1]
    return compute_return(first.value, latest.value, (latest.date - first.date).days)


def compute_trailing_returns(
        equity_curve: Sequence[EquityCurvePoint],
        drawdowns: DrawdownSummary | None = None,
) -> TrailingReturns:
    """
    Calculate every trailing window plus MDD and current drawdown.

    Args:
        equity_curve: Ascending equity curve (anchored at inception)
        drawdowns: Precomputed drawdown summary over the same curve.
                   Computed here when not supplied.

    Returns:
        TrailingReturns with None for every window lacking data
    """
    if not equity_curve:
        return TrailingReturns()

    if drawdowns is None:
        drawdowns = compute_drawdown_curve(equity_curve)

    values: dict[str, Decimal | None] = {
        label: compute_window_return(equity_curve, days)
        for label, days in TRAILING_WINDOWS.items()
    }

    return replace(
        TrailingReturns(**values),
        since_inception=compute_since_inception(equity_curve),
        mdd=drawdowns.max_drawdown,
        current_dd=drawdowns.current_drawdown,
    )
