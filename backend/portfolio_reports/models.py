# backend/portfolio_reports/models.py
from datetime import date
from decimal import Decimal

from sqlalchemy import String, Date, ForeignKey, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Account(Base):
    """
    A reported account (managed account, PMS or prop book).

    account_type and broker select the default master sheet tags; strategy
    is the short code shown as the report title (e.g. "QAW+").
    """
    __tablename__ = "accounts"

    qcode: Mapped[str] = mapped_column(String, primary_key=True)
    account_name: Mapped[str | None] = mapped_column(String, nullable=True)
    account_type: Mapped[str] = mapped_column(String, index=True)
    broker: Mapped[str | None] = mapped_column(String, nullable=True)
    strategy: Mapped[str | None] = mapped_column(String, nullable=True)

    allocations: Mapped[list["AccountAllocation"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )


class AccountAllocation(Base):
    """Links an investor (icode) to the accounts they hold."""
    __tablename__ = "account_allocations"

    __table_args__ = (
        UniqueConstraint('icode', 'qcode', name='uq_allocation_icode_qcode'),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    icode: Mapped[str] = mapped_column(String, index=True)
    qcode: Mapped[str] = mapped_column(ForeignKey("accounts.qcode"), index=True)

    account: Mapped["Account"] = relationship(back_populates="allocations")


class MasterSheet(Base):
    """
    Daily account observations, one row per (qcode, system_tag, date).

    A system_tag names one logical series of an account (e.g. "Zerodha
    Total Portfolio", "Total Portfolio Value"). Rows of different tags carry
    different subsets of the numeric columns, so every value is nullable.

    drawdown may be stored signed (negative) by upstream loaders; readers
    expose its magnitude.
    """
    __tablename__ = "master_sheet"

    __table_args__ = (
        UniqueConstraint('qcode', 'system_tag', 'date', name='uq_master_sheet_qcode_tag_date'),
        # Range scans for one account and tag in date order
        Index('ix_master_sheet_qcode_tag_date', 'qcode', 'system_tag', 'date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    qcode: Mapped[str] = mapped_column(String, index=True)
    date: Mapped[date] = mapped_column(Date)
    system_tag: Mapped[str] = mapped_column(String)

    nav: Mapped[Decimal | None] = mapped_column(Numeric(precision=18, scale=6), nullable=True)
    portfolio_value: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    pnl: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    capital_in_out: Mapped[Decimal | None] = mapped_column(Numeric(precision=20, scale=4), nullable=True)
    drawdown: Mapped[Decimal | None] = mapped_column(Numeric(precision=10, scale=4), nullable=True)
