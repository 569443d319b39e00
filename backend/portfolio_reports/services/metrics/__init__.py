# backend/portfolio_reports/services/metrics/__init__.py
"""
Metrics Engine Package.

This package turns dated NAV / P&L observations into report metrics:
- Nearest-date lookup over ordered series
- Absolute / CAGR returns (switching at 365 days)
- Drawdown curve, maximum and current drawdown
- Trailing returns over fixed windows with staleness tolerance
- Monthly and quarterly P&L tables with chained NAV and compounding
- Per-account and consolidated assembly

Architecture:
    metrics/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Data classes for inputs and results
    ├── resolver.py              # Ordering and nearest-date lookup
    ├── returns.py               # Absolute / CAGR return
    ├── drawdown.py              # Peak tracking and drawdowns
    ├── trailing.py              # Trailing windows
    ├── buckets.py               # Monthly / quarterly tables
    ├── assembler.py             # Result assembly and series merging
    └── service.py               # PortfolioMetricsService (orchestrator)

Data Flow:
    DataSourceProtocol.get_series()
        ↓
    DatedSeries (ascending, unique dates)
        ↓
    ┌─────────────────────────────────────────┐
    │              assemble()                 │
    │  equity curve → trailing / drawdowns    │
    │  series       → monthly / quarterly     │
    └─────────────────────────────────────────┘
        ↓
    PortfolioMetricsResult
"""

from portfolio_reports.services.metrics.assembler import (
    anchor_series,
    assemble,
    build_equity_curve,
    clip_to_range,
    empty_result,
    extract_cash_flows,
    merge_series,
)
from portfolio_reports.services.metrics.buckets import (
    aggregate_monthly,
    aggregate_quarterly,
    compound_percents,
)
from portfolio_reports.services.metrics.drawdown import compute_drawdown_curve
from portfolio_reports.services.metrics.resolver import ensure_ordered, resolve
from portfolio_reports.services.metrics.returns import compute_return
from portfolio_reports.services.metrics.service import PortfolioMetricsService
from portfolio_reports.services.metrics.trailing import compute_trailing_returns
from portfolio_reports.services.metrics.types import (
    # Input types
    CashFlow,
    DatedRecord,
    Direction,
    # Curves
    DrawdownCurvePoint,
    DrawdownSummary,
    EquityCurvePoint,
    # Result types
    AccountMetrics,
    CalendarBucket,
    ConsolidatedMetrics,
    MetricsOverride,
    PortfolioMetricsResult,
    TrailingReturns,
    YearlyBuckets,
)

__all__ = [
    # Main service
    "PortfolioMetricsService",

    # Input types
    "CashFlow",
    "DatedRecord",
    "Direction",

    # Curves
    "DrawdownCurvePoint",
    "DrawdownSummary",
    "EquityCurvePoint",

    # Result types
    "AccountMetrics",
    "CalendarBucket",
    "ConsolidatedMetrics",
    "MetricsOverride",
    "PortfolioMetricsResult",
    "TrailingReturns",
    "YearlyBuckets",

    # Engine functions
    "aggregate_monthly",
    "aggregate_quarterly",
    "anchor_series",
    "assemble",
    "build_equity_curve",
    "clip_to_range",
    "compound_percents",
    "compute_drawdown_curve",
    "compute_return",
    "compute_trailing_returns",
    "empty_result",
    "ensure_ordered",
    "extract_cash_flows",
    "merge_series",
    "resolve",
]
