# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- In-memory data source double for the metrics service
- Sample data factories
"""

import os

# Must be set before portfolio_reports.config is imported anywhere
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_reports.models import Base, Account, AccountAllocation, MasterSheet
from portfolio_reports.services.accounts import AccountInfo, categorize_tag
from portfolio_reports.services.metrics.types import DatedRecord, EquityCurvePoint
from portfolio_reports.services.protocols import TagSummary


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# IN-MEMORY DATA SOURCE
# =============================================================================

class InMemoryDataSource:
    """
    DataSourceProtocol implementation backed by dicts.

    Allows configuring accounts, series per (qcode, tag) and failures.
    """

    def __init__(self):
        self._accounts: dict[str, AccountInfo] = {}
        self._allocations: dict[str, list[str]] = {}
        self._series: dict[tuple[str, str], list[DatedRecord]] = {}
        self._errors: dict[str, Exception] = {}
        self.series_calls: list[tuple[str, str]] = []

    def add_account(
            self,
            qcode: str,
            account_type: str = "managed_account",
            broker: str | None = "zerodha",
            strategy: str | None = "QAW+",
            icode: str | None = None,
    ) -> None:
        self._accounts[qcode] = AccountInfo(qcode, account_type, broker, strategy)
        if icode:
            self._allocations.setdefault(icode, []).append(qcode)

    def add_series(self, qcode: str, tag: str, records: list[DatedRecord]) -> None:
        self._series[(qcode, tag)] = list(records)

    def add_error(self, qcode: str, error: Exception) -> None:
        """Make every series read for qcode raise error."""
        self._errors[qcode] = error

    def get_series(self, qcode, tag, start_date=None, end_date=None):
        self.series_calls.append((qcode, tag))
        if qcode in self._errors:
            raise self._errors[qcode]
        return [
            r for r in self._series.get((qcode, tag), [])
            if (start_date is None or r.date >= start_date)
            and (end_date is None or r.date <= end_date)
        ]

    def get_account(self, qcode):
        return self._accounts.get(qcode)

    def get_accounts(self, icode, account_type=None, broker=None):
        return [
            self._accounts[q] for q in self._allocations.get(icode, [])
            if (account_type is None or self._accounts[q].account_type == account_type)
            and (broker is None or self._accounts[q].broker == broker)
        ]

    def list_tags(self, qcode):
        return [
            TagSummary(
                tag=tag,
                category=categorize_tag(tag).value,
                record_count=len(records),
                last_date=records[-1].date if records else None,
            )
            for (q, tag), records in sorted(self._series.items())
            if q == qcode
        ]


@pytest.fixture
def data_source() -> InMemoryDataSource:
    """Fresh in-memory data source."""
    return InMemoryDataSource()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def nav_series(
        start: date,
        navs: list[str | int],
        step_days: int = 1,
        **fields: str,
) -> list[DatedRecord]:
    """
    Build a NAV series, one record every step_days.

    Extra keyword fields (pnl, capital_in_out, portfolio_value) are applied
    to every record as Decimal.
    """
    extra = {name: Decimal(value) for name, value in fields.items()}
    return [
        DatedRecord(date=start + timedelta(days=i * step_days), nav=Decimal(str(nav)), **extra)
        for i, nav in enumerate(navs)
    ]


def curve(points: list[tuple[date, str | int]]) -> list[EquityCurvePoint]:
    """Build an equity curve from (date, value) pairs."""
    return [EquityCurvePoint(date=d, value=Decimal(str(v))) for d, v in points]


def daily_curve(start: date, days: int, value: str = "100") -> list[EquityCurvePoint]:
    """Flat daily equity curve of `days` points."""
    return [EquityCurvePoint(date=start + timedelta(days=i), value=Decimal(value)) for i in range(days)]


@pytest.fixture
def seeded_db(db: Session) -> Session:
    """
    Database with one investor holding two managed accounts.

    QAC00001 (QAW+, zerodha): NAV 100 -> 110 -> 99 on the first of Jan-Mar 2024
    QAC00002 (QYE+, zerodha): NAV on 'Total Portfolio Value', signed drawdown
    """
    db.add_all([
        Account(qcode="QAC00001", account_type="managed_account", broker="zerodha", strategy="QAW+"),
        Account(qcode="QAC00002", account_type="managed_account", broker="zerodha", strategy="QYE+"),
        AccountAllocation(icode="QUS0001", qcode="QAC00001"),
        AccountAllocation(icode="QUS0001", qcode="QAC00002"),
    ])

    for day, nav, pnl, capital in [
        (date(2024, 1, 1), "100", "0", "1000000"),
        (date(2024, 2, 1), "110", "100000", "0"),
        (date(2024, 3, 1), "99", "-110000", "0"),
    ]:
        db.add(MasterSheet(
            qcode="QAC00001",
            date=day,
            system_tag="Zerodha Total Portfolio",
            nav=Decimal(nav),
            portfolio_value=Decimal("1000000") + Decimal(pnl),
            pnl=Decimal(pnl),
            capital_in_out=Decimal(capital),
        ))

    db.add_all([
        MasterSheet(qcode="QAC00002", date=date(2024, 1, 1), system_tag="Zerodha Total Portfolio",
                    capital_in_out=Decimal("500000"), portfolio_value=Decimal("500000")),
        MasterSheet(qcode="QAC00002", date=date(2024, 1, 1), system_tag="Total Portfolio Value",
                    nav=Decimal("100"), pnl=Decimal("0"), drawdown=Decimal("0")),
        MasterSheet(qcode="QAC00002", date=date(2024, 2, 1), system_tag="Total Portfolio Value",
                    nav=Decimal("95"), pnl=Decimal("-25000"), drawdown=Decimal("-5")),
    ])
    db.commit()
    return db
