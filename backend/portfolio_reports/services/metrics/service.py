# backend/portfolio_reports/services/metrics/service.py
"""
Portfolio Metrics Service orchestrator.

This is the main entry point for metrics reporting. It:
1. Resolves which master sheet tags feed each account (profiles, tag spec)
2. Fetches the deposit, NAV, exposure and cash-flow series per account
3. Delegates to the pure engine (assembler) per account
4. Merges the accounts into one consolidated view

Architecture:
    PortfolioMetricsService
        ├── uses → DataSourceProtocol (MasterSheetDataSource)
        ├── uses → AccountRegistry (tags, overrides, strategy names)
        └── uses → assembler (assemble, merge_series, clip_to_range)

Concurrency:
    Per-account fetch-and-reduce runs on a ThreadPoolExecutor; the
    consolidation waits for every account. Nothing is cached and no state
    outlives a call, so one service instance may serve concurrent requests.

Failure Policy:
    - Invalid tag specs / missing prop tags raise ConfigurationError before
      any work is scheduled.
    - Any other failure while computing one account is logged and that
      account reduces to an empty result; the report still assembles.

Usage:
    from portfolio_reports.services.metrics import PortfolioMetricsService

    service = PortfolioMetricsService(data_source, registry)

    single = service.get_account_metrics("QAC00041")
    report = service.get_investor_metrics("QUS0007", account_type="managed_account")
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from portfolio_reports.services.accounts import (
    AccountInfo,
    AccountProfile,
    AccountRegistry,
    TagSet,
    strategy_display_name,
)
from portfolio_reports.services.constants import DEFAULT_METRICS_MAX_WORKERS, ZERO
from portfolio_reports.services.exceptions import (
    AccountNotFoundError,
    InvestorNotFoundError,
    ValidationError,
)
from portfolio_reports.services.metrics.assembler import (
    assemble,
    clip_to_range,
    empty_result,
    extract_cash_flows,
    merge_series,
)
from portfolio_reports.services.metrics.resolver import ensure_ordered
from portfolio_reports.services.metrics.types import (
    AccountMetrics,
    CashFlow,
    ConsolidatedMetrics,
    DatedRecord,
    PortfolioMetricsResult,
)
from portfolio_reports.services.protocols import DataSourceProtocol, TagSummary
from portfolio_reports.utils.context import run_in_worker_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _AccountJob:
    """Everything needed to compute one account, resolved up front."""
    profile: AccountProfile
    tags: TagSet


@dataclass(frozen=True)
class _AccountOutcome:
    """Computed account plus the inputs the consolidation reuses."""
    metrics: AccountMetrics
    nav_series: tuple[DatedRecord, ...] = ()
    cash_flows: tuple[CashFlow, ...] = ()


class PortfolioMetricsService:
    """
    Service for per-account and consolidated portfolio metrics.

    Attributes:
        _data_source: Series and account reader
        _registry: Account profiles
        _max_workers: Thread pool size for per-account fan-out
    """

    def __init__(
            self,
            data_source: DataSourceProtocol,
            registry: AccountRegistry | None = None,
            max_workers: int = DEFAULT_METRICS_MAX_WORKERS,
    ) -> None:
        self._data_source = data_source
        self._registry = registry or AccountRegistry()
        self._max_workers = max_workers

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_account_metrics(
            self,
            qcode: str,
            tag_spec: str | None = None,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> AccountMetrics:
        """
        Compute metrics for a single account.

        Args:
            qcode: Account code
            tag_spec: Optional "depositTag|navTag[|cashflowTag]"
            start_date: Optional display window start (curves, cash flows)
            end_date: Optional display window end

        Raises:
            AccountNotFoundError: If the qcode is unknown
            ConfigurationError: If the tags cannot be resolved
        """
        _validate_date_range(start_date, end_date)

        account = self._data_source.get_account(qcode)
        if account is None:
            raise AccountNotFoundError(qcode)

        job = self._prepare(account, tag_spec)
        outcome = self._compute_account(job)

        logger.info(f"Computed metrics for {qcode} (nav tag '{job.tags.nav_tag}')")
        return replace(
            outcome.metrics,
            metrics=clip_to_range(outcome.metrics.metrics, start_date, end_date),
        )

    def get_investor_metrics(
            self,
            icode: str,
            account_type: str | None = None,
            broker: str | None = None,
            tag_spec: str | None = None,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> ConsolidatedMetrics:
        """
        Compute the consolidated report for every account of an investor.

        Raises:
            InvestorNotFoundError: If the investor has no (matching) accounts
            ConfigurationError: If any account's tags cannot be resolved
        """
        accounts = self._data_source.get_accounts(icode, account_type=account_type, broker=broker)
        if not accounts:
            raise InvestorNotFoundError(icode)

        return self.get_consolidated_metrics(accounts, tag_spec, start_date, end_date)

    def get_consolidated_metrics(
            self,
            accounts: Sequence[AccountInfo],
            tag_spec: str | None = None,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> ConsolidatedMetrics:
        """
        Compute each account in parallel and merge them into one view.

        Consolidated series: NAV averaged per date over the accounts
        reporting it, money fields summed. Deposits, exposure and total
        profit are sums of the per-account figures.

        Args:
            accounts: Accounts to include, in display order
            tag_spec: Optional tag spec applied to every account
            start_date: Optional display window start
            end_date: Optional display window end
        """
        _validate_date_range(start_date, end_date)

        # Resolve configuration before scheduling so errors reach the caller
        jobs = [self._prepare(account, tag_spec) for account in accounts]

        outcomes = self._run_jobs(jobs)

        if len(outcomes) == 1:
            consolidated = outcomes[0].metrics.metrics
        else:
            consolidated = self._consolidate(outcomes)

        strategy_name = strategy_display_name(job.profile.strategy for job in jobs)

        logger.info(
            f"Consolidated {len(outcomes)} accounts "
            f"({sum(1 for o in outcomes if o.metrics.metrics.has_data)} with data)"
        )

        return ConsolidatedMetrics(
            accounts=tuple(
                replace(o.metrics, metrics=clip_to_range(o.metrics.metrics, start_date, end_date))
                for o in outcomes
            ),
            consolidated=clip_to_range(consolidated, start_date, end_date),
            strategy_name=strategy_name,
        )

    def get_account_tags(self, qcode: str) -> list[TagSummary]:
        """
        List the master sheet tags recorded for an account.

        Raises:
            AccountNotFoundError: If the qcode is unknown
        """
        if self._data_source.get_account(qcode) is None:
            raise AccountNotFoundError(qcode)
        return self._data_source.list_tags(qcode)

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _prepare(self, account: AccountInfo, tag_spec: str | None) -> _AccountJob:
        profile = self._registry.profile_for(account)
        return _AccountJob(profile=profile, tags=profile.tags(tag_spec))

    def _run_jobs(self, jobs: list[_AccountJob]) -> list[_AccountOutcome]:
        """Run account jobs on the pool, preserving request order."""
        if len(jobs) == 1:
            return [self._compute_account(jobs[0])]

        workers = min(self._max_workers, len(jobs))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="metrics") as pool:
            futures = [
                pool.submit(run_in_worker_context(self._compute_account), job)
                for job in jobs
            ]
            return [future.result() for future in futures]

    def _compute_account(self, job: _AccountJob) -> _AccountOutcome:
        """
        Fetch and reduce one account.

        Never raises: failures are logged and reduce to an empty result
        carrying a warning.
        """
        qcode = job.profile.qcode
        try:
            return self._fetch_and_assemble(job)
        except Exception as e:
            logger.warning(f"Metrics for {qcode} failed, reporting no data: {e}", exc_info=True)
            return _AccountOutcome(
                metrics=AccountMetrics(
                    qcode=qcode,
                    strategy_name=job.profile.strategy_name,
                    metrics=empty_result(),
                    warnings=(f"Metrics unavailable: {type(e).__name__}",),
                )
            )

    def _fetch_and_assemble(self, job: _AccountJob) -> _AccountOutcome:
        qcode = job.profile.qcode
        tags = job.tags

        # Tags frequently coincide; read each distinct tag once
        fetched: dict[str, tuple[DatedRecord, ...]] = {}

        def series_for(tag: str) -> tuple[DatedRecord, ...]:
            if tag not in fetched:
                fetched[tag] = ensure_ordered(self._data_source.get_series(qcode, tag))
            return fetched[tag]

        nav_series = series_for(tags.nav_tag)
        deposit_series = series_for(tags.deposit_tag)
        exposure_series = series_for(tags.exposure_tag)
        cashflow_series = series_for(tags.cashflow_tag)

        deposit_amount = sum(
            (r.capital_in_out for r in deposit_series if r.capital_in_out is not None),
            ZERO,
        )
        latest_exposure = _latest_portfolio_value(exposure_series)
        cash_flows = extract_cash_flows(cashflow_series)

        result = assemble(
            nav_series,
            cash_flows,
            deposit_amount,
            latest_exposure,
            job.profile.metrics_override(),
        )

        warnings: tuple[str, ...] = ()
        if not result.has_data:
            warnings = (f"No NAV data for tag '{tags.nav_tag}'",)

        return _AccountOutcome(
            metrics=AccountMetrics(
                qcode=qcode,
                strategy_name=job.profile.strategy_name,
                metrics=result,
                warnings=warnings,
            ),
            nav_series=nav_series,
            cash_flows=cash_flows,
        )

    def _consolidate(self, outcomes: list[_AccountOutcome]) -> PortfolioMetricsResult:
        """Assemble the merged series and sum the per-account amounts."""
        results = [o.metrics.metrics for o in outcomes]

        merged = merge_series([o.nav_series for o in outcomes if o.nav_series])
        consolidated = assemble(
            merged,
            [cf for o in outcomes for cf in o.cash_flows],
            sum((r.amount_deposited for r in results), ZERO),
            sum((r.current_exposure for r in results), ZERO),
        )

        return replace(
            consolidated,
            total_profit=sum((r.total_profit for r in results), ZERO),
        )


def _validate_date_range(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError(
            f"start date {start_date} is after end date {end_date}",
            field="from_date",
        )


def _latest_portfolio_value(series: Sequence[DatedRecord]) -> Decimal | None:
    for record in reversed(series):
        if record.portfolio_value is not None:
            return record.portfolio_value
    return None
