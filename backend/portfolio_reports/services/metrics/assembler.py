# backend/portfolio_reports/services/metrics/assembler.py
"""
Portfolio metrics assembly.

Combines the engine components into one PortfolioMetricsResult:

    DatedSeries
        ├── equity curve (anchored at 100) → trailing returns
        │                                  → drawdown curve / MDD
        ├── monthly and quarterly bucket tables
        └── total profit, cumulative return

Consolidated views are built by merging several DatedSeries into one
(NAV averaged per date, money fields summed) and assembling the merged
series like any single account.

Everything here is a pure function of its inputs.
"""

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

from portfolio_reports.services.constants import INCEPTION_NAV, ZERO
from portfolio_reports.services.metrics.buckets import aggregate_monthly, aggregate_quarterly
from portfolio_reports.services.metrics.drawdown import compute_drawdown_curve
from portfolio_reports.services.metrics.resolver import ensure_ordered
from portfolio_reports.services.metrics.returns import compute_return
from portfolio_reports.services.metrics.trailing import compute_trailing_returns
from portfolio_reports.services.metrics.types import (
    CashFlow,
    DatedRecord,
    EquityCurvePoint,
    MetricsOverride,
    PortfolioMetricsResult,
    TrailingReturns,
)
from portfolio_reports.utils.date_utils import in_range

logger = logging.getLogger(__name__)


# =============================================================================
# SERIES HELPERS
# =============================================================================

def build_equity_curve(series: Sequence[DatedRecord]) -> tuple[EquityCurvePoint, ...]:
    """
    Build the NAV equity curve, anchored at the inception base.

    If the first NAV is not 100, a synthetic point with value 100 is
    placed one day before it so every curve starts from the same base.
    Records without a NAV are skipped.
    """
    points = [EquityCurvePoint(date=r.date, value=r.nav) for r in series if r.nav is not None]
    if not points:
        return ()

    if points[0].value != INCEPTION_NAV:
        anchor = EquityCurvePoint(date=points[0].date - timedelta(days=1), value=INCEPTION_NAV)
        points.insert(0, anchor)

    return tuple(points)


def anchor_series(series: Sequence[DatedRecord]) -> tuple[DatedRecord, ...]:
    """
    Prepend a synthetic inception record (NAV 100) when the first NAV is not 100.

    Used before merging accounts so each account enters the average from
    the common base on its own start date.
    """
    ordered = ensure_ordered(series)
    first = next((r for r in ordered if r.nav is not None), None)
    if first is None or first.nav == INCEPTION_NAV:
        return ordered

    anchor = DatedRecord(date=first.date - timedelta(days=1), nav=INCEPTION_NAV)
    return ensure_ordered((anchor, *ordered))


def extract_cash_flows(series: Sequence[DatedRecord]) -> tuple[CashFlow, ...]:
    """Capital movements of a series as cash flows, zero movements dropped."""
    return tuple(
        CashFlow(date=r.date, amount=r.capital_in_out)
        for r in ensure_ordered(series)
        if r.capital_in_out is not None and r.capital_in_out != ZERO
    )


def merge_series(series_list: Sequence[Sequence[DatedRecord]]) -> tuple[DatedRecord, ...]:
    """
    Merge several account series into one consolidated series.

    Per date:
        nav             = mean of the NAVs reported on that date
        portfolio_value = sum over accounts reporting it
        pnl             = sum over accounts reporting it
        capital_in_out  = sum over accounts reporting it

    Each account is anchored at 100 first, so an account joining late
    enters the average at the base. A date where only synthetic anchors
    fall is not emitted: assemble() re-anchors the merged curve itself, and
    an extra record would add a bucket (and a day of history) that no
    account has. A field nobody reported on a date stays None. Drawdowns
    are not merged; they are recomputed from the merged curve.
    """
    navs: dict[date, list[Decimal]] = {}
    sums: dict[date, dict[str, Decimal]] = {}
    reported: set[date] = set()

    for series in series_list:
        real = ensure_ordered(series)
        reported.update(r.date for r in real)
        for record in anchor_series(real):
            if record.nav is not None:
                navs.setdefault(record.date, []).append(record.nav)
            totals = sums.setdefault(record.date, {})
            for name in ("portfolio_value", "pnl", "capital_in_out"):
                value = getattr(record, name)
                if value is not None:
                    totals[name] = totals.get(name, ZERO) + value

    merged = []
    for d in sorted(reported):
        day_navs = navs.get(d)
        merged.append(
            DatedRecord(
                date=d,
                nav=sum(day_navs, ZERO) / len(day_navs) if day_navs else None,
                portfolio_value=sums[d].get("portfolio_value"),
                pnl=sums[d].get("pnl"),
                capital_in_out=sums[d].get("capital_in_out"),
            )
        )

    logger.debug(f"Merged {len(series_list)} series into {len(merged)} dates")
    return tuple(merged)


# =============================================================================
# ASSEMBLY
# =============================================================================

def empty_result() -> PortfolioMetricsResult:
    """Result for an account with no data: zero amounts, no-data metrics."""
    return PortfolioMetricsResult()


# Mirrored from the drawdown curve, which overrides never touch
_DRAWDOWN_FIELDS = frozenset({"mdd", "current_dd"})


def _apply_trailing_overrides(
        trailing: TrailingReturns,
        values: dict[str, Decimal | None],
) -> TrailingReturns:
    known = {
        k: v for k, v in values.items()
        if hasattr(trailing, k) and k not in _DRAWDOWN_FIELDS
    }
    if len(known) != len(values):
        logger.warning(f"Ignoring trailing overrides: {sorted(set(values) - set(known))}")
    return replace(trailing, **known) if known else trailing


def assemble(
        series: Sequence[DatedRecord],
        cash_flows: Sequence[CashFlow] = (),
        deposit_amount: Decimal | None = None,
        latest_exposure: Decimal | None = None,
        overrides: MetricsOverride | None = None,
) -> PortfolioMetricsResult:
    """
    Assemble every metric for one account (or one merged series).

    Args:
        series: DatedSeries for the NAV tag (ordered here if needed)
        cash_flows: Capital movements for the cash-flow table
        deposit_amount: Sum of deposit-tagged capital movements
        latest_exposure: Latest portfolio value on the exposure tag
        overrides: Historical values merged over the computed ones

    Returns:
        PortfolioMetricsResult (empty_result() shape when series is empty)
    """
    ordered = ensure_ordered(series)
    overrides = overrides or MetricsOverride()

    equity_curve = build_equity_curve(ordered)
    drawdowns = compute_drawdown_curve(equity_curve)
    trailing = compute_trailing_returns(equity_curve, drawdowns)
    trailing = _apply_trailing_overrides(trailing, overrides.trailing_returns)

    anchor_nav = equity_curve[0].value if equity_curve else None
    monthly = aggregate_monthly(ordered, anchor_nav, overrides.monthly_percent)
    quarterly = aggregate_quarterly(ordered, anchor_nav, overrides.quarterly_percent)

    total_profit = sum((r.pnl for r in ordered if r.pnl is not None), ZERO)

    cumulative_return = None
    real_navs = [r for r in ordered if r.nav is not None]
    if real_navs:
        cumulative_return = compute_return(
            anchor_nav,
            real_navs[-1].nav,
            (real_navs[-1].date - real_navs[0].date).days,
        )

    if overrides.cumulative_return is not None:
        cumulative_return = overrides.cumulative_return
    if overrides.total_profit is not None:
        total_profit = overrides.total_profit

    logger.debug(
        f"Assembled metrics over {len(ordered)} records, "
        f"{len(equity_curve)} curve points"
    )

    return PortfolioMetricsResult(
        amount_deposited=deposit_amount if deposit_amount is not None else ZERO,
        current_exposure=latest_exposure if latest_exposure is not None else ZERO,
        total_profit=total_profit,
        cumulative_return=cumulative_return,
        trailing_returns=trailing,
        max_drawdown=drawdowns.max_drawdown,
        current_drawdown=drawdowns.current_drawdown,
        equity_curve=equity_curve,
        drawdown_curve=drawdowns.curve,
        monthly_pnl=monthly,
        quarterly_pnl=quarterly,
        cash_flows=tuple(sorted(cash_flows, key=lambda cf: cf.date)),
        inception_date=equity_curve[0].date if equity_curve else None,
        data_as_of=equity_curve[-1].date if equity_curve else None,
    )


def clip_to_range(
        result: PortfolioMetricsResult,
        start_date: date | None = None,
        end_date: date | None = None,
) -> PortfolioMetricsResult:
    """
    Restrict the displayed curves and cash flows to a date range.

    Computed metrics (returns, drawdowns, bucket tables) and the
    inception/as-of dates keep reflecting the full history.
    """
    if start_date is None and end_date is None:
        return result

    return replace(
        result,
        equity_curve=tuple(p for p in result.equity_curve if in_range(p.date, start_date, end_date)),
        drawdown_curve=tuple(p for p in result.drawdown_curve if in_range(p.date, start_date, end_date)),
        cash_flows=tuple(cf for cf in result.cash_flows if in_range(cf.date, start_date, end_date)),
    )
