# backend/tests/services/metrics/test_metrics_service.py
"""
Tests for PortfolioMetricsService orchestration.

Uses the in-memory data source from conftest; no database.

Test Coverage:
- Single account: tag resolution, deposits, exposure, warnings
- Failure policy: configuration errors raise, data errors degrade
- Consolidation: merged NAV, summed amounts, strategy name
- Correlation ID reaches worker threads
"""

import threading
from datetime import date
from decimal import Decimal

import pytest

from portfolio_reports.services.accounts import (
    AccountProfile,
    AccountRegistry,
    AccountType,
    OverrideConfig,
    TOTAL_PORTFOLIO_VALUE,
    ZERODHA_TOTAL_PORTFOLIO,
)
from portfolio_reports.services.exceptions import (
    AccountNotFoundError,
    ConfigurationError,
    InvestorNotFoundError,
    ValidationError,
)
from portfolio_reports.services.metrics import DatedRecord, PortfolioMetricsService
from portfolio_reports.services.metrics.drawdown import compute_drawdown_curve
from portfolio_reports.utils.context import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

from tests.conftest import curve


def _rec(d: date, nav=None, pnl=None, capital=None, value=None) -> DatedRecord:
    def dec(v):
        return Decimal(v) if v is not None else None

    return DatedRecord(date=d, nav=dec(nav), pnl=dec(pnl), capital_in_out=dec(capital), portfolio_value=dec(value))


@pytest.fixture
def populated(data_source):
    """
    Investor QUS0001 with two zerodha accounts.

    QAC00001 (QAW+): everything on 'Zerodha Total Portfolio', NAV 100/110/99
    QAC00002 (QYE+): deposits on 'Zerodha Total Portfolio', NAV on
                     'Total Portfolio Value', NAV 100/96
    """
    data_source.add_account("QAC00001", strategy="QAW+", icode="QUS0001")
    data_source.add_account("QAC00002", strategy="QYE+", icode="QUS0001")

    data_source.add_series("QAC00001", ZERODHA_TOTAL_PORTFOLIO, [
        _rec(date(2024, 1, 1), "100", "0", "1000", "1000"),
        _rec(date(2024, 2, 1), "110", "100", "0", "1100"),
        _rec(date(2024, 3, 1), "99", "-110", "0", "990"),
    ])
    data_source.add_series("QAC00002", ZERODHA_TOTAL_PORTFOLIO, [
        _rec(date(2024, 1, 1), capital="500", value="500"),
        _rec(date(2024, 2, 1), value="480"),
    ])
    data_source.add_series("QAC00002", TOTAL_PORTFOLIO_VALUE, [
        _rec(date(2024, 1, 1), "100", "0"),
        _rec(date(2024, 2, 1), "96", "-20"),
    ])
    return data_source


@pytest.fixture
def service(populated) -> PortfolioMetricsService:
    return PortfolioMetricsService(populated, max_workers=2)


# =============================================================================
# SINGLE ACCOUNT
# =============================================================================

class TestAccountMetrics:
    """Tests for get_account_metrics."""

    def test_summary(self, service):
        account = service.get_account_metrics("QAC00001")

        metrics = account.metrics
        assert account.qcode == "QAC00001"
        assert account.strategy_name == "Qode All Weather+"
        assert account.warnings == ()
        assert metrics.amount_deposited == Decimal("1000")
        assert metrics.current_exposure == Decimal("990")
        assert metrics.total_profit == Decimal("-10")
        assert metrics.cumulative_return == Decimal("-1")
        assert metrics.max_drawdown == Decimal("10")

    def test_shared_tag_read_once(self, service, populated):
        service.get_account_metrics("QAC00001")

        assert populated.series_calls == [("QAC00001", ZERODHA_TOTAL_PORTFOLIO)]

    def test_nav_tag_by_strategy(self, service, populated):
        account = service.get_account_metrics("QAC00002")

        assert ("QAC00002", TOTAL_PORTFOLIO_VALUE) in populated.series_calls
        assert account.metrics.cumulative_return == Decimal("-4")
        assert account.metrics.amount_deposited == Decimal("500")
        assert account.metrics.current_exposure == Decimal("480")

    def test_tag_spec(self, service):
        """NAV read from the deposit tag of QAC00002 has no NAV values."""
        account = service.get_account_metrics(
            "QAC00002",
            tag_spec=f"{ZERODHA_TOTAL_PORTFOLIO}|{ZERODHA_TOTAL_PORTFOLIO}",
        )

        assert not account.metrics.has_data
        assert account.warnings == (f"No NAV data for tag '{ZERODHA_TOTAL_PORTFOLIO}'",)

    def test_unknown_account(self, service):
        with pytest.raises(AccountNotFoundError):
            service.get_account_metrics("NOPE")

    def test_invalid_tag_spec_raises(self, service):
        with pytest.raises(ConfigurationError):
            service.get_account_metrics("QAC00001", tag_spec="only-one")

    def test_start_after_end_raises(self, service):
        with pytest.raises(ValidationError):
            service.get_account_metrics(
                "QAC00001",
                start_date=date(2024, 3, 1),
                end_date=date(2024, 1, 1),
            )

    def test_data_failure_degrades_to_empty(self, service, populated):
        populated.add_error("QAC00001", RuntimeError("connection reset"))

        account = service.get_account_metrics("QAC00001")

        assert not account.metrics.has_data
        assert account.warnings == ("Metrics unavailable: RuntimeError",)

    def test_display_range_clips_curves(self, service):
        account = service.get_account_metrics("QAC00001", start_date=date(2024, 2, 1))

        assert [p.date for p in account.metrics.equity_curve] == [date(2024, 2, 1), date(2024, 3, 1)]
        assert account.metrics.cumulative_return == Decimal("-1")

    def test_profile_overrides_applied(self, populated):
        registry = AccountRegistry([
            AccountProfile(
                qcode="QAC00001",
                account_type=AccountType.MANAGED_ACCOUNT,
                broker="zerodha",
                strategy="QAW+",
                overrides=OverrideConfig(cumulative_return=Decimal("7.5")),
            )
        ])
        service = PortfolioMetricsService(populated, registry)

        account = service.get_account_metrics("QAC00001")

        assert account.metrics.cumulative_return == Decimal("7.5")

    def test_prop_account_requires_tag_spec(self, populated):
        populated.add_account("PROP1", account_type="prop", broker=None, strategy=None)
        service = PortfolioMetricsService(populated)

        with pytest.raises(ConfigurationError):
            service.get_account_metrics("PROP1")


# =============================================================================
# CONSOLIDATION
# =============================================================================

class TestInvestorMetrics:
    """Tests for get_investor_metrics / get_consolidated_metrics."""

    def test_consolidated_totals(self, service):
        report = service.get_investor_metrics("QUS0001")

        consolidated = report.consolidated
        assert [a.qcode for a in report.accounts] == ["QAC00001", "QAC00002"]
        assert consolidated.amount_deposited == Decimal("1500")
        assert consolidated.current_exposure == Decimal("1470")
        assert consolidated.total_profit == Decimal("-30")
        assert len(consolidated.cash_flows) == 2

    def test_consolidated_nav_is_average(self, service):
        report = service.get_investor_metrics("QUS0001")

        values = [p.value for p in report.consolidated.equity_curve]
        assert values == [Decimal("100"), Decimal("103"), Decimal("99")]

    def test_drawdown_recomputed_on_averaged_curve(self, data_source):
        """A falls 10% while B rises: the average dips far less than A."""
        dates = [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]
        data_source.add_account("QACA", icode="QUS0002")
        data_source.add_account("QACB", icode="QUS0002")
        data_source.add_series("QACA", ZERODHA_TOTAL_PORTFOLIO, [
            _rec(d, nav) for d, nav in zip(dates, ["100", "100", "90"])
        ])
        data_source.add_series("QACB", ZERODHA_TOTAL_PORTFOLIO, [
            _rec(d, nav) for d, nav in zip(dates, ["100", "102", "104"])
        ])
        service = PortfolioMetricsService(data_source, max_workers=2)

        report = service.get_investor_metrics("QUS0002")

        averaged = compute_drawdown_curve(curve(list(zip(dates, ["100", "101", "97"]))))
        per_account = max(a.metrics.max_drawdown for a in report.accounts)
        assert per_account == Decimal("10")
        assert report.consolidated.max_drawdown == averaged.max_drawdown
        assert report.consolidated.current_drawdown == averaged.current_drawdown
        assert Decimal("0") < report.consolidated.max_drawdown < per_account

    def test_strategy_name_joined(self, service):
        report = service.get_investor_metrics("QUS0001")

        assert report.strategy_name == "Qode All Weather+ + Qode Yield Enhancer+"

    def test_single_account_used_directly(self, service, populated):
        report = service.get_consolidated_metrics([populated.get_account("QAC00001")])

        assert report.consolidated == report.accounts[0].metrics
        assert report.consolidated.total_profit == Decimal("-10")

    def test_filters_passed_to_source(self, service):
        report = service.get_investor_metrics("QUS0001", broker="zerodha", account_type="managed_account")

        assert len(report.accounts) == 2

    def test_unknown_investor(self, service):
        with pytest.raises(InvestorNotFoundError):
            service.get_investor_metrics("NOPE")

    def test_filter_excluding_everything(self, service):
        with pytest.raises(InvestorNotFoundError):
            service.get_investor_metrics("QUS0001", account_type="pms")

    def test_failed_account_does_not_block_report(self, service, populated):
        populated.add_error("QAC00002", RuntimeError("timeout"))

        report = service.get_investor_metrics("QUS0001")

        failed = report.accounts[1]
        assert not failed.metrics.has_data
        assert failed.warnings == ("Metrics unavailable: RuntimeError",)
        assert report.consolidated.has_data
        assert report.consolidated.amount_deposited == Decimal("1000")

    def test_configuration_error_raised_before_work(self, service, populated):
        populated.add_account("PROP1", account_type="prop", broker=None, strategy=None, icode="QUS0001")

        with pytest.raises(ConfigurationError):
            service.get_investor_metrics("QUS0001")

        assert populated.series_calls == []


class TestWorkerContext:
    """Correlation IDs must reach the worker threads."""

    def test_correlation_id_in_workers(self, populated):
        seen: list[tuple[str, str | None]] = []
        original = populated.get_series

        def recording_get_series(*args, **kwargs):
            seen.append((threading.current_thread().name, get_correlation_id()))
            return original(*args, **kwargs)

        populated.get_series = recording_get_series
        service = PortfolioMetricsService(populated, max_workers=2)

        set_correlation_id("req-123")
        try:
            service.get_investor_metrics("QUS0001")
        finally:
            clear_correlation_id()

        assert seen
        assert all(name.startswith("metrics") for name, _ in seen)
        assert all(cid == "req-123" for _, cid in seen)


class TestAccountTags:

    def test_lists_tags(self, service):
        tags = service.get_account_tags("QAC00002")

        assert [t.tag for t in tags] == [TOTAL_PORTFOLIO_VALUE, ZERODHA_TOTAL_PORTFOLIO]
        assert tags[0].category == "nav"

    def test_unknown_account(self, service):
        with pytest.raises(AccountNotFoundError):
            service.get_account_tags("NOPE")
