# backend/portfolio_reports/services/metrics/types.py
"""
Data types for the metrics engine.

This module defines the data structures used throughout the metrics
calculations. All numeric values use Decimal for financial precision.

"No data" is always represented as None. A metric that is None means the
value could not be computed (missing history, stale comparison point),
which is different from a computed zero. The conversion to a display
placeholder happens only in the HTTP schemas.

Architecture:
    - DatedRecord: One sampled observation from the data source
    - EquityCurvePoint / DrawdownCurvePoint: Derived curves
    - TrailingReturns: Results for every lookback window
    - CalendarBucket / YearlyBuckets: Monthly and quarterly P&L tables
    - MetricsOverride: Injected values merged over computed results
    - PortfolioMetricsResult: Everything assembled for one account view
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class Direction(str, Enum):
    """
    Search direction for nearest-date lookups.

    Attributes:
        ON_OR_BEFORE: Latest record dated on or before the target
        ON_OR_AFTER: Earliest record dated on or after the target
        CLOSEST: Whichever of the two is nearer (ties go to ON_OR_BEFORE)
    """
    ON_OR_BEFORE = "on_or_before"
    ON_OR_AFTER = "on_or_after"
    CLOSEST = "closest"


# =============================================================================
# INPUT TYPES
# =============================================================================

@dataclass(frozen=True)
class DatedRecord:
    """
    A single day's observation for one account and tag.

    Fields are optional because different tags populate different subsets
    (a deposit tag may carry only capital movements, a NAV tag only NAV and
    P&L). A computation that needs a missing field skips the record.

    Attributes:
        date: Observation date (day granularity)
        nav: Net asset value per unit (normalized, inception = 100)
        portfolio_value: Absolute portfolio value in account currency
        pnl: Cash profit/loss booked on this day
        capital_in_out: Deposits (positive) / withdrawals (negative)
        drawdown_percent: Drawdown magnitude reported by the source
    """
    date: date
    nav: Decimal | None = None
    portfolio_value: Decimal | None = None
    pnl: Decimal | None = None
    capital_in_out: Decimal | None = None
    drawdown_percent: Decimal | None = None


@dataclass(frozen=True)
class CashFlow:
    """
    A capital movement for the cash-flow table.

    Attributes:
        date: When the cash flow occurred
        amount: Positive = deposit/inflow, Negative = withdrawal/outflow
    """
    date: date
    amount: Decimal


# =============================================================================
# DERIVED CURVES
# =============================================================================

@dataclass(frozen=True)
class EquityCurvePoint:
    """A NAV-like value on a date."""
    date: date
    value: Decimal


@dataclass(frozen=True)
class DrawdownCurvePoint:
    """
    Drawdown at one point of an equity curve.

    Attributes:
        date: Curve date
        drawdown: (peak - value) / peak * 100, always >= 0
        peak: Running maximum of the curve up to and including this point
    """
    date: date
    drawdown: Decimal
    peak: Decimal


@dataclass(frozen=True)
class DrawdownSummary:
    """
    Output of a single pass over an equity curve.

    Attributes:
        curve: One DrawdownCurvePoint per input point
        max_drawdown: Worst drawdown magnitude (0 for empty input)
        current_drawdown: Drawdown of the final point (0 for empty input)
    """
    curve: tuple[DrawdownCurvePoint, ...] = ()
    max_drawdown: Decimal = Decimal("0")
    current_drawdown: Decimal = Decimal("0")


# =============================================================================
# TRAILING RETURNS
# =============================================================================

@dataclass(frozen=True)
class TrailingReturns:
    """
    Trailing returns as percentages, one field per lookback window.

    None means "no data" (insufficient history or stale comparison point).
    mdd and current_dd are drawdown magnitudes (non-negative).
    """
    five_days: Decimal | None = None
    ten_days: Decimal | None = None
    fifteen_days: Decimal | None = None
    one_month: Decimal | None = None
    three_months: Decimal | None = None
    six_months: Decimal | None = None
    one_year: Decimal | None = None
    two_years: Decimal | None = None
    five_years: Decimal | None = None
    since_inception: Decimal | None = None
    mdd: Decimal | None = None
    current_dd: Decimal | None = None


# =============================================================================
# CALENDAR BUCKETS
# =============================================================================

@dataclass(frozen=True)
class CalendarBucket:
    """
    One month or quarter of activity.

    start_nav is chained from the previous bucket's end_nav, so percentage
    returns compound correctly across buckets.

    Attributes:
        year: Calendar year
        period: Month number (1-12) or quarter number (1-4)
        start_nav: End NAV of the preceding bucket (anchor for the first)
        end_nav: NAV of the last record inside the bucket
        cash_pnl: Sum of pnl inside the bucket
        capital_in_out: Sum of capital movements inside the bucket
        percent: Return in percent, None when start_nav is not positive
    """
    year: int
    period: int
    start_nav: Decimal | None
    end_nav: Decimal | None
    cash_pnl: Decimal
    capital_in_out: Decimal
    percent: Decimal | None


@dataclass(frozen=True)
class YearlyBuckets:
    """
    All buckets of one year plus compounded totals.

    Attributes:
        year: Calendar year
        buckets: Period number -> bucket, only periods with records
        total_percent: Compounded return of the buckets, None if no bucket
                       had a valid percent
        total_cash: Straight sum of bucket cash P&L
        total_capital_in_out: Straight sum of bucket capital movements
    """
    year: int
    buckets: dict[int, CalendarBucket] = field(default_factory=dict)
    total_percent: Decimal | None = None
    total_cash: Decimal = Decimal("0")
    total_capital_in_out: Decimal = Decimal("0")


# =============================================================================
# OVERRIDES
# =============================================================================

@dataclass(frozen=True)
class MetricsOverride:
    """
    Historical values injected over computed results.

    Used for closed or migrated schemes whose published figures must be
    reproduced regardless of what the stored records compute to. Every
    field is optional; only the values present are merged.

    Attributes:
        cumulative_return: Replaces the computed cumulative return
        total_profit: Replaces the computed total profit
        trailing_returns: Window label -> value (None forces "no data")
        monthly_percent: (year, month) -> bucket percent
        quarterly_percent: (year, quarter) -> bucket percent
    """
    cumulative_return: Decimal | None = None
    total_profit: Decimal | None = None
    trailing_returns: dict[str, Decimal | None] = field(default_factory=dict)
    monthly_percent: dict[tuple[int, int], Decimal | None] = field(default_factory=dict)
    quarterly_percent: dict[tuple[int, int], Decimal | None] = field(default_factory=dict)


# =============================================================================
# COMBINED RESULT
# =============================================================================

@dataclass(frozen=True)
class PortfolioMetricsResult:
    """
    Everything the presentation layer needs for one account or strategy.

    Created once per request and never mutated afterwards.
    """
    amount_deposited: Decimal = Decimal("0")
    current_exposure: Decimal = Decimal("0")
    total_profit: Decimal = Decimal("0")
    cumulative_return: Decimal | None = None
    trailing_returns: TrailingReturns = field(default_factory=TrailingReturns)
    max_drawdown: Decimal = Decimal("0")
    current_drawdown: Decimal = Decimal("0")
    equity_curve: tuple[EquityCurvePoint, ...] = ()
    drawdown_curve: tuple[DrawdownCurvePoint, ...] = ()
    monthly_pnl: dict[int, YearlyBuckets] = field(default_factory=dict)
    quarterly_pnl: dict[int, YearlyBuckets] = field(default_factory=dict)
    cash_flows: tuple[CashFlow, ...] = ()
    inception_date: date | None = None
    data_as_of: date | None = None

    @property
    def has_data(self) -> bool:
        """True if at least one NAV observation contributed to the result."""
        return bool(self.equity_curve)


@dataclass(frozen=True)
class AccountMetrics:
    """Result for one underlying account of a consolidated view."""
    qcode: str
    strategy_name: str
    metrics: PortfolioMetricsResult
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConsolidatedMetrics:
    """
    Per-account results plus the merged view.

    Attributes:
        accounts: One entry per requested account, in request order
        consolidated: Result assembled from the merged series
        strategy_name: Display name of the combined strategy
    """
    accounts: tuple[AccountMetrics, ...]
    consolidated: PortfolioMetricsResult
    strategy_name: str
