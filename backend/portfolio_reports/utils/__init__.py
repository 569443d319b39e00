# backend/portfolio_reports/utils/__init__.py
"""
Utility modules for Portfolio Reports.

This package contains cross-cutting utilities used throughout the application:
- logging: Logging configuration and setup with correlation ID support
- context: Request context management for correlation IDs
- date_utils: Calendar helpers (quarters, month names, ranges)

Usage:
    from portfolio_reports.utils import setup_logging
    from portfolio_reports.utils import get_correlation_id, set_correlation_id
    from portfolio_reports.utils.date_utils import quarter_of
"""

from portfolio_reports.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    new_correlation_id,
    run_in_worker_context,
)
from portfolio_reports.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_correlation_id",
    "run_in_worker_context",
]
