# backend/portfolio_reports/schemas/__init__.py
"""
Pydantic schemas for API responses.

This package contains all Pydantic schemas organized by domain:
- errors: Error response formats
- metrics: Portfolio reports (trailing returns, curves, P&L tables)

Usage:
    from portfolio_reports.schemas import AccountMetricsResponse
    from portfolio_reports.schemas import ErrorDetail
"""

from portfolio_reports.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_reports.schemas.metrics import (
    # Trailing returns
    TrailingReturnsResponse,
    # Curves
    EquityCurvePointResponse,
    DrawdownCurvePointResponse,
    CashFlowResponse,
    # P&L tables
    PnlCellResponse,
    PnlYearResponse,
    # Reports
    PortfolioMetricsResponse,
    AccountMetricsResponse,
    InvestorMetricsResponse,
    # Tags
    TagResponse,
    AccountTagsResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Metrics
    "TrailingReturnsResponse",
    "EquityCurvePointResponse",
    "DrawdownCurvePointResponse",
    "CashFlowResponse",
    "PnlCellResponse",
    "PnlYearResponse",
    "PortfolioMetricsResponse",
    "AccountMetricsResponse",
    "InvestorMetricsResponse",
    "TagResponse",
    "AccountTagsResponse",
]
