# backend/portfolio_reports/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- The SQLAlchemy data source satisfies it without inheritance
- Test doubles (in-memory series) work without a database
- Clear documentation of what the metrics service reads
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_reports.services.accounts import AccountInfo
    from portfolio_reports.services.metrics.types import DatedRecord


@dataclass(frozen=True)
class TagSummary:
    """A master sheet tag available for an account."""
    tag: str
    category: str
    record_count: int
    last_date: date | None


class DataSourceProtocol(Protocol):
    """Interface required by PortfolioMetricsService."""

    def get_series(
        self,
        qcode: str,
        tag: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[DatedRecord]:
        ...

    def get_account(self, qcode: str) -> AccountInfo | None:
        ...

    def get_accounts(
        self,
        icode: str,
        account_type: str | None = None,
        broker: str | None = None,
    ) -> list[AccountInfo]:
        ...

    def list_tags(self, qcode: str) -> list[TagSummary]:
        ...
