# backend/tests/services/metrics/test_returns.py
"""
Unit tests for compute_return.

All tests use known values that can be verified by hand.

Test Coverage:
- Absolute return below 365 days
- CAGR from 365 days on (boundary inclusive)
- Missing and non-positive inputs
"""

from decimal import Decimal

import pytest

from portfolio_reports.services.metrics.returns import compute_return

TOLERANCE = Decimal("0.000001")


class TestAbsoluteReturn:
    """Periods shorter than one year use the absolute formula."""

    def test_positive_return(self):
        result = compute_return(Decimal("100"), Decimal("112.5"), 90)
        assert result == Decimal("12.5")

    def test_negative_return(self):
        result = compute_return(Decimal("100"), Decimal("80"), 30)
        assert result == Decimal("-20")

    def test_364_days_is_absolute(self):
        """1.21x over 364 days is +21%, not annualized."""
        result = compute_return(Decimal("100"), Decimal("121"), 364)
        assert result == Decimal("21")

    def test_zero_days(self):
        result = compute_return(Decimal("100"), Decimal("105"), 0)
        assert result == Decimal("5")


class TestCagr:
    """Periods of 365 days or more are annualized."""

    def test_365_days_is_cagr_and_equals_absolute(self):
        """At exactly one year the exponent is 1, so CAGR equals absolute."""
        result = compute_return(Decimal("100"), Decimal("121"), 365)
        assert abs(result - Decimal("21")) < TOLERANCE

    def test_two_years(self):
        """1.21x over 730 days is 10% per year."""
        result = compute_return(Decimal("100"), Decimal("121"), 730)
        assert abs(result - Decimal("10")) < TOLERANCE

    def test_loss_over_two_years(self):
        """0.81x over 730 days is -10% per year."""
        result = compute_return(Decimal("100"), Decimal("81"), 730)
        assert abs(result - Decimal("-10")) < TOLERANCE

    def test_total_loss(self):
        assert compute_return(Decimal("100"), Decimal("0"), 800) == Decimal("-100")


class TestEdgeCases:
    """Unchanged values, missing values and invalid start values."""

    @pytest.mark.parametrize("days", [0, 1, 200, 364, 365, 400, 2000])
    def test_unchanged_value_is_zero(self, days):
        assert compute_return(Decimal("100"), Decimal("100"), days) == 0

    def test_missing_start(self):
        assert compute_return(None, Decimal("100"), 10) is None

    def test_missing_end(self):
        assert compute_return(Decimal("100"), None, 10) is None

    def test_zero_start(self):
        assert compute_return(Decimal("0"), Decimal("100"), 10) is None

    def test_negative_start(self):
        assert compute_return(Decimal("-5"), Decimal("100"), 400) is None
