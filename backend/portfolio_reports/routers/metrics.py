# backend/portfolio_reports/routers/metrics.py
"""
Portfolio report endpoints.

Provides the assembled metrics for accounts and investors:
- GET /accounts/{qcode}/metrics - Report for one account
- GET /accounts/{qcode}/tags - Master sheet tags recorded for an account
- GET /investors/{icode}/metrics - Consolidated report over an investor's accounts

Optional parameters:
- tag: Tag spec "depositTag|navTag[|cashflowTag]" (default: account profile)
- from_date / to_date: Display window for curves and cash flows. Returns,
  drawdowns and P&L tables always use the full history.

Values are returned as strings at 2 decimal places; "-" means no data.
"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Request

from portfolio_reports.dependencies import get_metrics_service
from portfolio_reports.middleware.rate_limit import limiter, RATE_LIMIT_METRICS
from portfolio_reports.schemas.metrics import (
    AccountMetricsResponse,
    AccountTagsResponse,
    CashFlowResponse,
    DrawdownCurvePointResponse,
    EquityCurvePointResponse,
    InvestorMetricsResponse,
    PnlCellResponse,
    PnlYearResponse,
    PortfolioMetricsResponse,
    TagResponse,
    TrailingReturnsResponse,
)
from portfolio_reports.services.accounts import AccountType
from portfolio_reports.services.constants import NO_DATA_DISPLAY
from portfolio_reports.services.metrics import PortfolioMetricsService
from portfolio_reports.services.metrics.buckets import round_display
from portfolio_reports.services.metrics.types import (
    AccountMetrics,
    PortfolioMetricsResult,
    TrailingReturns,
    YearlyBuckets,
)
from portfolio_reports.utils.date_utils import MONTH_NAMES, QUARTER_KEYS

router = APIRouter(
    tags=["Metrics"],
)

TOTAL_KEY = "total"

TAG_SPEC_DESCRIPTION = (
    "Tag spec 'depositTag|navTag[|cashflowTag]'. "
    "Defaults to the tags configured for the account."
)


# =============================================================================
# HELPERS
# =============================================================================

def _decimal_to_str(value: Decimal | None) -> str:
    """Convert Decimal to a 2 dp string, or "-" when there is no data."""
    if value is None:
        return NO_DATA_DISPLAY
    return str(round_display(value))


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_trailing_returns(trailing: TrailingReturns) -> TrailingReturnsResponse:
    """Map internal TrailingReturns to Pydantic schema."""
    return TrailingReturnsResponse(
        five_days=_decimal_to_str(trailing.five_days),
        ten_days=_decimal_to_str(trailing.ten_days),
        fifteen_days=_decimal_to_str(trailing.fifteen_days),
        one_month=_decimal_to_str(trailing.one_month),
        three_months=_decimal_to_str(trailing.three_months),
        six_months=_decimal_to_str(trailing.six_months),
        one_year=_decimal_to_str(trailing.one_year),
        two_years=_decimal_to_str(trailing.two_years),
        five_years=_decimal_to_str(trailing.five_years),
        since_inception=_decimal_to_str(trailing.since_inception),
        mdd=_decimal_to_str(trailing.mdd),
        current_dd=_decimal_to_str(trailing.current_dd),
    )


def _map_pnl_table(
        table: dict[int, YearlyBuckets],
        labels: tuple[str, ...],
) -> list[PnlYearResponse]:
    """
    Map a monthly or quarterly table, one row per year.

    Every label appears in each row; periods without records are "-".
    """
    empty = PnlCellResponse(
        percent=NO_DATA_DISPLAY,
        cash=NO_DATA_DISPLAY,
        capital_in_out=NO_DATA_DISPLAY,
    )
    rows = []

    for year in sorted(table):
        yearly = table[year]
        periods: dict[str, PnlCellResponse] = {}

        for number, label in enumerate(labels, start=1):
            bucket = yearly.buckets.get(number)
            if bucket is None:
                periods[label] = empty
                continue
            periods[label] = PnlCellResponse(
                percent=_decimal_to_str(bucket.percent),
                cash=_decimal_to_str(bucket.cash_pnl),
                capital_in_out=_decimal_to_str(bucket.capital_in_out),
            )

        periods[TOTAL_KEY] = PnlCellResponse(
            percent=_decimal_to_str(yearly.total_percent),
            cash=_decimal_to_str(yearly.total_cash),
            capital_in_out=_decimal_to_str(yearly.total_capital_in_out),
        )
        rows.append(PnlYearResponse(year=year, periods=periods))

    return rows


def _map_portfolio_metrics(result: PortfolioMetricsResult) -> PortfolioMetricsResponse:
    """Map internal PortfolioMetricsResult to Pydantic schema."""
    # Drawdowns of an empty history are "no data", not a computed zero
    max_drawdown = result.max_drawdown if result.has_data else None
    current_drawdown = result.current_drawdown if result.has_data else None

    return PortfolioMetricsResponse(
        has_data=result.has_data,
        inception_date=result.inception_date,
        data_as_of=result.data_as_of,
        amount_deposited=_decimal_to_str(result.amount_deposited),
        current_exposure=_decimal_to_str(result.current_exposure),
        total_profit=_decimal_to_str(result.total_profit),
        cumulative_return=_decimal_to_str(result.cumulative_return),
        max_drawdown=_decimal_to_str(max_drawdown),
        current_drawdown=_decimal_to_str(current_drawdown),
        trailing_returns=_map_trailing_returns(result.trailing_returns),
        equity_curve=[
            EquityCurvePointResponse(date=p.date, nav=_decimal_to_str(p.value))
            for p in result.equity_curve
        ],
        drawdown_curve=[
            DrawdownCurvePointResponse(date=p.date, drawdown=_decimal_to_str(p.drawdown))
            for p in result.drawdown_curve
        ],
        cash_flows=[
            CashFlowResponse(date=cf.date, amount=_decimal_to_str(cf.amount))
            for cf in result.cash_flows
        ],
        monthly_pnl=_map_pnl_table(result.monthly_pnl, MONTH_NAMES),
        quarterly_pnl=_map_pnl_table(result.quarterly_pnl, QUARTER_KEYS),
    )


def _map_account_metrics(account: AccountMetrics) -> AccountMetricsResponse:
    """Map internal AccountMetrics to Pydantic schema."""
    return AccountMetricsResponse(
        qcode=account.qcode,
        strategy_name=account.strategy_name,
        warnings=list(account.warnings),
        metrics=_map_portfolio_metrics(account.metrics),
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/accounts/{qcode}/metrics",
    response_model=AccountMetricsResponse,
    summary="Get the report for one account",
    response_description="Summary, trailing returns, curves and P&L tables",
)
@limiter.limit(RATE_LIMIT_METRICS)
def get_account_metrics(
        request: Request,  # Required for rate limiting
        qcode: str,
        tag: str | None = Query(default=None, description=TAG_SPEC_DESCRIPTION),
        from_date: date | None = Query(
            default=None,
            description="Start of the display window for curves and cash flows",
        ),
        to_date: date | None = Query(
            default=None,
            description="End of the display window for curves and cash flows",
        ),
        service: PortfolioMetricsService = Depends(get_metrics_service),
) -> AccountMetricsResponse:
    """
    Get the assembled report for an account.

    Returns:
    - **Summary**: amount deposited, current exposure, total profit, cumulative return
    - **Trailing returns**: 5d to 5y plus since inception (CAGR beyond one year)
    - **Drawdowns**: maximum and current, plus the drawdown curve
    - **Tables**: monthly and quarterly P&L with compounded yearly totals

    Raises **404** for an unknown account and **400** for an unusable tag spec.
    """
    account = service.get_account_metrics(
        qcode,
        tag_spec=tag,
        start_date=from_date,
        end_date=to_date,
    )
    return _map_account_metrics(account)


@router.get(
    "/accounts/{qcode}/tags",
    response_model=AccountTagsResponse,
    summary="List the tags recorded for an account",
)
@limiter.limit(RATE_LIMIT_METRICS)
def get_account_tags(
        request: Request,  # Required for rate limiting
        qcode: str,
        service: PortfolioMetricsService = Depends(get_metrics_service),
) -> AccountTagsResponse:
    """
    List the master sheet tags available for an account, with a guessed
    category (deposit, nav, exposure, other) to help build a tag spec.
    """
    tags = service.get_account_tags(qcode)
    return AccountTagsResponse(
        qcode=qcode,
        tags=[
            TagResponse(
                tag=t.tag,
                category=t.category,
                record_count=t.record_count,
                last_date=t.last_date,
            )
            for t in tags
        ],
    )


@router.get(
    "/investors/{icode}/metrics",
    response_model=InvestorMetricsResponse,
    summary="Get the consolidated report for an investor",
    response_description="Consolidated report plus one report per account",
)
@limiter.limit(RATE_LIMIT_METRICS)
def get_investor_metrics(
        request: Request,  # Required for rate limiting
        icode: str,
        account_type: AccountType | None = Query(
            default=None,
            description="Restrict to one account type",
        ),
        broker: str | None = Query(default=None, description="Restrict to one broker"),
        tag: str | None = Query(default=None, description=TAG_SPEC_DESCRIPTION),
        from_date: date | None = Query(default=None),
        to_date: date | None = Query(default=None),
        service: PortfolioMetricsService = Depends(get_metrics_service),
) -> InvestorMetricsResponse:
    """
    Get the consolidated report across an investor's accounts.

    Accounts are computed in parallel. The consolidated NAV is the per-date
    average over the accounts reporting that date; deposits, exposure and
    profit are summed. An account whose data cannot be read still appears,
    with no data and a warning.

    Raises **404** if the investor has no matching accounts.
    """
    report = service.get_investor_metrics(
        icode,
        account_type=account_type.value if account_type else None,
        broker=broker,
        tag_spec=tag,
        start_date=from_date,
        end_date=to_date,
    )

    return InvestorMetricsResponse(
        icode=icode,
        strategy_name=report.strategy_name,
        consolidated=_map_portfolio_metrics(report.consolidated),
        accounts=[_map_account_metrics(a) for a in report.accounts],
    )
