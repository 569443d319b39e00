# backend/portfolio_reports/services/constants.py
"""
Centralized constants for the Portfolio Reports services.

This module provides a single source of truth for the business rules
used by the metrics engine. Centralizing these values:

1. Prevents inconsistencies between account types (every account goes
   through the same engine with the same thresholds)
2. Documents the meaning and units of each constant
3. Keeps arithmetic free of magic numbers

Usage:
    from portfolio_reports.services.constants import (
        CALENDAR_DAYS_PER_YEAR,
        INCEPTION_NAV,
        TRAILING_WINDOWS,
    )
"""

from decimal import Decimal


# =============================================================================
# FINANCIAL CALENDAR CONSTANTS
# =============================================================================

# Standard number of calendar days in a year.
# Returns over periods of at least this many days are annualized (CAGR),
# shorter periods are reported as absolute returns.
CALENDAR_DAYS_PER_YEAR: int = 365


# =============================================================================
# NAV NORMALIZATION
# =============================================================================

# Every equity curve is anchored to this inception base. If the first real
# NAV differs, a synthetic point one day earlier carries this value.
INCEPTION_NAV: Decimal = Decimal("100")


# =============================================================================
# TRAILING RETURN WINDOWS
# =============================================================================

# Lookback windows in calendar days, in display order.
# "since_inception" has no fixed length and is handled separately.
TRAILING_WINDOWS: dict[str, int] = {
    "five_days": 5,
    "ten_days": 10,
    "fifteen_days": 15,
    "one_month": 30,
    "three_months": 90,
    "six_months": 180,
    "one_year": 365,
    "two_years": 730,
    "five_years": 1825,
}

# Maximum distance (days) between the requested comparison date and the
# record actually found. Short windows tolerate a week of gaps (weekends,
# holidays); long windows tolerate a month.
SHORT_WINDOW_MAX_DAYS: int = 30
SHORT_WINDOW_TOLERANCE_DAYS: int = 7
LONG_WINDOW_TOLERANCE_DAYS: int = 30


# =============================================================================
# PRECISION
# =============================================================================

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")
HUNDRED: Decimal = Decimal("100")

# Display precision for percentages and money (2 decimal places).
# Bucket percentages are compounded at this precision so yearly totals
# match the monthly figures shown next to them.
DISPLAY_PRECISION: Decimal = Decimal("0.01")

# Placeholder rendered by the presentation layer for "no data"
NO_DATA_DISPLAY: str = "-"


# =============================================================================
# CONCURRENCY
# =============================================================================

# Default worker count for per-account fan-out in consolidated reports
DEFAULT_METRICS_MAX_WORKERS: int = 4


# =============================================================================
# RATE LIMITING
# =============================================================================

# Rate limits use slowapi format: "{count}/{period}"
RATE_LIMIT_DEFAULT: str = "100/minute"

# Health checks (for load balancers and monitoring)
RATE_LIMIT_HEALTH: str = "60/minute"
