#!/usr/bin/env python3
# backend/init_db.py
"""
Create the master sheet tables.

    python backend/init_db.py            # create missing tables
    python backend/init_db.py --reset    # drop and recreate (local only)

In production the master sheet is written by the upstream loaders; this
script is for local databases, followed by scripts/seed_sample_data.py.
"""
import sys
from pathlib import Path

# Make 'portfolio_reports' importable when run from the repo root
sys.path.insert(0, str(Path(__file__).parent))

from portfolio_reports.config import settings
from portfolio_reports.database import engine
from portfolio_reports.models import Base


def init_db(reset: bool = False) -> None:
    if reset:
        if settings.environment == "production":
            raise SystemExit("Refusing to drop tables in production")
        print("Dropping report tables...")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    init_db(reset="--reset" in sys.argv[1:])
