# backend/portfolio_reports/services/data_source.py
"""
Master sheet data source.

Reads DatedSeries and account rows from the database for the metrics
service. Each call opens and closes its own session from the injected
factory, so one instance can be used from several worker threads.

Usage:
    from portfolio_reports.database import SessionLocal
    from portfolio_reports.services.data_source import MasterSheetDataSource

    source = MasterSheetDataSource(SessionLocal)
    series = source.get_series("QAC00041", "Total Portfolio Value")
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio_reports.models import Account, AccountAllocation, MasterSheet
from portfolio_reports.services.accounts import AccountInfo, categorize_tag
from portfolio_reports.services.exceptions import MetricsError
from portfolio_reports.services.metrics.types import DatedRecord
from portfolio_reports.services.protocols import TagSummary

logger = logging.getLogger(__name__)


def _to_record(row: MasterSheet) -> DatedRecord:
    return DatedRecord(
        date=row.date,
        nav=row.nav,
        portfolio_value=row.portfolio_value,
        pnl=row.pnl,
        capital_in_out=row.capital_in_out,
        drawdown_percent=abs(row.drawdown) if row.drawdown is not None else None,
    )


def _to_account_info(account: Account) -> AccountInfo:
    return AccountInfo(
        qcode=account.qcode,
        account_type=account.account_type,
        broker=account.broker,
        strategy=account.strategy,
    )


class MasterSheetDataSource:
    """
    SQLAlchemy implementation of DataSourceProtocol.

    Every read raises MetricsError when the database cannot be queried.

    Attributes:
        _session_factory: Callable returning a new Session (e.g. SessionLocal)
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, what: str) -> Iterator[Session]:
        """Open a session; database errors surface as MetricsError."""
        try:
            with self._session_factory() as db:
                yield db
        except SQLAlchemyError as e:
            raise MetricsError(f"Could not read {what}") from e

    def get_series(
            self,
            qcode: str,
            tag: str,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> list[DatedRecord]:
        """
        Fetch one account's series for an exact tag, ascending by date.

        Args:
            qcode: Account code
            tag: Exact system_tag
            start_date: Optional inclusive lower bound
            end_date: Optional inclusive upper bound

        Returns:
            List of DatedRecord (empty when nothing matches)

        Raises:
            MetricsError: If the database cannot be read
        """
        conditions = [MasterSheet.qcode == qcode, MasterSheet.system_tag == tag]
        if start_date is not None:
            conditions.append(MasterSheet.date >= start_date)
        if end_date is not None:
            conditions.append(MasterSheet.date <= end_date)

        query = select(MasterSheet).where(and_(*conditions)).order_by(MasterSheet.date)

        with self._session(f"series '{tag}' for {qcode}") as db:
            records = [_to_record(row) for row in db.scalars(query).all()]

        logger.debug(f"Fetched {len(records)} records for {qcode} tag '{tag}'")
        return records

    def get_account(self, qcode: str) -> AccountInfo | None:
        """Fetch one account row, or None if the qcode is unknown."""
        with self._session(f"account {qcode}") as db:
            account = db.get(Account, qcode)
            return _to_account_info(account) if account is not None else None

    def get_accounts(
            self,
            icode: str,
            account_type: str | None = None,
            broker: str | None = None,
    ) -> list[AccountInfo]:
        """
        Fetch the accounts allocated to an investor, ordered by qcode.

        Args:
            icode: Investor code
            account_type: Optional filter (managed_account, pms, prop)
            broker: Optional filter, case-insensitive
        """
        conditions = [AccountAllocation.icode == icode]
        if account_type is not None:
            conditions.append(Account.account_type == account_type)
        if broker is not None:
            conditions.append(func.lower(Account.broker) == broker.lower())

        query = (
            select(Account)
            .join(AccountAllocation, AccountAllocation.qcode == Account.qcode)
            .where(and_(*conditions))
            .order_by(Account.qcode)
        )

        with self._session(f"accounts of {icode}") as db:
            return [_to_account_info(a) for a in db.scalars(query).unique().all()]

    def list_tags(self, qcode: str) -> list[TagSummary]:
        """
        List the distinct tags recorded for an account.

        Returns:
            One TagSummary per tag (name, category, record count, last date),
            ordered by tag name
        """
        query = (
            select(
                MasterSheet.system_tag,
                func.count(MasterSheet.id),
                func.max(MasterSheet.date),
            )
            .where(MasterSheet.qcode == qcode)
            .group_by(MasterSheet.system_tag)
            .order_by(MasterSheet.system_tag)
        )

        with self._session(f"tags of {qcode}") as db:
            rows = db.execute(query).all()

        return [
            TagSummary(
                tag=tag,
                category=categorize_tag(tag).value,
                record_count=count,
                last_date=last_date,
            )
            for tag, count, last_date in rows
        ]
