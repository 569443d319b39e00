# backend/portfolio_reports/routers/__init__.py
"""
API routers for Portfolio Reports.

Each router handles a specific domain:
- metrics: Account and investor reports, account tags
"""

from portfolio_reports.routers.metrics import router as metrics_router

__all__ = [
    "metrics_router",
]
