#!/usr/bin/env python3
# backend/scripts/seed_sample_data.py
"""
Seed a demo investor with two accounts and two years of master sheet rows.

    python backend/scripts/seed_sample_data.py

Rows are generated from a fixed seed, so repeated runs on an empty
database produce identical reports. Existing demo accounts are left alone.
"""
import logging
import random
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Setup path to import portfolio_reports modules
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from portfolio_reports.database import SessionLocal
from portfolio_reports.models import Account, AccountAllocation, MasterSheet
from portfolio_reports.services.accounts import PMS_TOTAL_PORTFOLIO, ZERODHA_TOTAL_PORTFOLIO

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_ICODE = "QUS0001"
START_DATE = date(2023, 1, 2)
TRADING_DAYS = 520

DEMO_ACCOUNTS = [
    # qcode, account_type, broker, strategy, tag, initial capital
    ("QAC00001", "managed_account", "zerodha", "QAW+", ZERODHA_TOTAL_PORTFOLIO, Decimal("5000000")),
    ("QAC00002", "pms", "pms", "QTF+", PMS_TOTAL_PORTFOLIO, Decimal("2500000")),
]


def _trading_days(start: date, count: int):
    day = start
    produced = 0
    while produced < count:
        if day.weekday() < 5:
            yield day
            produced += 1
        day += timedelta(days=1)


def _build_rows(qcode: str, tag: str, capital: Decimal, rng: random.Random) -> list[MasterSheet]:
    """Random-walk NAV starting at 100, one top-up every ~6 months."""
    rows = []
    nav = Decimal("100")
    value = capital
    peak = nav

    for i, day in enumerate(_trading_days(START_DATE, TRADING_DAYS)):
        capital_in_out = capital if i == 0 else Decimal("0")
        if i and i % 125 == 0:
            capital_in_out = (capital / 5).quantize(Decimal("1"))
            value += capital_in_out

        daily = Decimal(str(round(rng.gauss(0.0006, 0.009), 6)))
        pnl = (value * daily).quantize(Decimal("0.01"))
        nav = (nav * (1 + daily)).quantize(Decimal("0.000001"))
        value += pnl
        peak = max(peak, nav)

        rows.append(MasterSheet(
            qcode=qcode,
            date=day,
            system_tag=tag,
            nav=nav,
            portfolio_value=value.quantize(Decimal("0.01")),
            pnl=pnl,
            capital_in_out=capital_in_out,
            # Loaders store drawdown signed
            drawdown=-((peak - nav) / peak * 100).quantize(Decimal("0.0001")),
        ))

    return rows


def seed():
    db = SessionLocal()
    rng = random.Random(42)
    try:
        logger.info("Starting database seeding...")

        for qcode, account_type, broker, strategy, tag, capital in DEMO_ACCOUNTS:
            if db.get(Account, qcode) is not None:
                logger.info(f"Account exists: {qcode}")
                continue

            db.add(Account(
                qcode=qcode,
                account_name=f"Demo {strategy}",
                account_type=account_type,
                broker=broker,
                strategy=strategy,
            ))
            db.add(AccountAllocation(icode=DEMO_ICODE, qcode=qcode))
            rows = _build_rows(qcode, tag, capital, rng)
            db.add_all(rows)
            db.commit()
            logger.info(f"Created account {qcode} with {len(rows)} rows of '{tag}'")

        logger.info(f"Seeding complete. Try GET /investors/{DEMO_ICODE}/metrics")

    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
