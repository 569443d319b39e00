# backend/portfolio_reports/schemas/metrics.py
"""
Pydantic schemas for the Metrics API.

These schemas define the response formats for portfolio reports:
- Summary figures (deposits, exposure, profit, cumulative return)
- Trailing returns and drawdowns
- Equity and drawdown curves, cash flows
- Monthly and quarterly P&L tables

Design decisions:
- Percentages and money are serialized as STRINGS at 2 decimal places
  (half-up), the precision the report is read at
- Returns are in percent (12.50 = 12.5%)
- A metric with no data is rendered as "-", never as "0.00"; a computed
  zero stays "0.00"
- Bucket tables list every month (or quarter) of a year; periods without
  records are "-"
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# TRAILING RETURNS
# =============================================================================

class TrailingReturnsResponse(BaseModel):
    """Trailing returns in percent; "-" where the window has no data."""

    model_config = ConfigDict(populate_by_name=True)

    five_days: str = Field(..., alias="5d")
    ten_days: str = Field(..., alias="10d")
    fifteen_days: str = Field(..., alias="15d")
    one_month: str = Field(..., alias="1m")
    three_months: str = Field(..., alias="3m")
    six_months: str = Field(..., alias="6m")
    one_year: str = Field(..., alias="1y")
    two_years: str = Field(..., alias="2y")
    five_years: str = Field(..., alias="5y")
    since_inception: str = Field(..., alias="sinceInception")
    mdd: str = Field(..., alias="MDD")
    current_dd: str = Field(..., alias="currentDD")


# =============================================================================
# CURVES AND CASH FLOWS
# =============================================================================

class EquityCurvePointResponse(BaseModel):
    date: date
    nav: str


class DrawdownCurvePointResponse(BaseModel):
    date: date
    drawdown: str = Field(..., description="Drawdown magnitude in percent")


class CashFlowResponse(BaseModel):
    date: date
    amount: str = Field(..., description="Positive = deposit, negative = withdrawal")


# =============================================================================
# P&L TABLES
# =============================================================================

class PnlCellResponse(BaseModel):
    """One month, quarter or yearly total of a P&L table."""

    percent: str
    cash: str
    capital_in_out: str


class PnlYearResponse(BaseModel):
    """
    One row of a P&L table.

    periods is keyed by month name ("January" ...) or quarter ("q1" ...),
    plus "total" for the compounded year.
    """

    year: int
    periods: dict[str, PnlCellResponse]


# =============================================================================
# REPORTS
# =============================================================================

class PortfolioMetricsResponse(BaseModel):
    """Complete report for one account or a consolidated view."""

    has_data: bool
    inception_date: date | None = None
    data_as_of: date | None = None

    amount_deposited: str
    current_exposure: str
    total_profit: str
    cumulative_return: str
    max_drawdown: str
    current_drawdown: str

    trailing_returns: TrailingReturnsResponse
    equity_curve: list[EquityCurvePointResponse]
    drawdown_curve: list[DrawdownCurvePointResponse]
    cash_flows: list[CashFlowResponse]
    monthly_pnl: list[PnlYearResponse]
    quarterly_pnl: list[PnlYearResponse]


class AccountMetricsResponse(BaseModel):
    """Report for one account."""

    qcode: str
    strategy_name: str
    warnings: list[str] = Field(default_factory=list)
    metrics: PortfolioMetricsResponse


class InvestorMetricsResponse(BaseModel):
    """Consolidated report for an investor plus each underlying account."""

    icode: str
    strategy_name: str
    consolidated: PortfolioMetricsResponse
    accounts: list[AccountMetricsResponse]


class TagResponse(BaseModel):
    tag: str
    category: str = Field(..., description="deposit, nav, exposure or other")
    record_count: int
    last_date: date | None = None


class AccountTagsResponse(BaseModel):
    qcode: str
    tags: list[TagResponse]


