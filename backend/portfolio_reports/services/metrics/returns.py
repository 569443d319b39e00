# backend/portfolio_reports/services/metrics/returns.py
"""
Return calculation for the metrics engine.

Every return reported by the engine (trailing windows, since inception,
cumulative return) goes through compute_return so they all share one
switching rule:

    elapsed_days <  365:  Absolute = (End / Start - 1) * 100
    elapsed_days >= 365:  CAGR     = ((End / Start)^(365 / elapsed_days) - 1) * 100

The 365-day boundary is inclusive on the CAGR side and is deliberately not
a parameter.

Precision Note:
    Python's Decimal supports non-integer exponents through __pow__, so the
    CAGR path stays in Decimal. For extreme ratios that raise
    decimal.InvalidOperation we fall back to float exponentiation
    (~15 significant digits, negligible for percentage returns).
"""

import decimal
import logging
from decimal import Decimal

from portfolio_reports.services.constants import (
    CALENDAR_DAYS_PER_YEAR,
    HUNDRED,
    ONE,
    ZERO,
)

logger = logging.getLogger(__name__)


def compute_return(
        start_value: Decimal | None,
        end_value: Decimal | None,
        elapsed_days: int,
) -> Decimal | None:
    """
    Calculate the return between two NAV observations, in percent.

    Args:
        start_value: NAV at the comparison point
        end_value: NAV at the reference ("now") point
        elapsed_days: Calendar days between the two observations

    Returns:
        Return in percent (e.g., 12.5 = 12.5%), or None if either value is
        missing or start_value is not positive
    """
    if start_value is None or end_value is None:
        return None

    if start_value <= ZERO:
        return None

    ratio = end_value / start_value

    if elapsed_days < CALENDAR_DAYS_PER_YEAR:
        return (ratio - ONE) * HUNDRED

    if ratio <= ZERO:
        return -HUNDRED  # Total loss

    exponent = Decimal(CALENDAR_DAYS_PER_YEAR) / Decimal(elapsed_days)

    try:
        growth = ratio ** exponent
    except decimal.InvalidOperation:
        logger.debug(f"Decimal power failed for ratio={ratio}, exponent={exponent}; using float")
        growth = Decimal(str(float(ratio) ** float(exponent)))

    return (growth - ONE) * HUNDRED
