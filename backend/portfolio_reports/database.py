# backend/portfolio_reports/database.py
"""
Master sheet database connection and sessions.

The metrics service reads the master sheet from several worker threads at
once (one per account in a consolidated report). Each worker opens its own
session from SessionLocal; sessions are never shared across threads, so
the PostgreSQL pool is sized through DB_POOL_SIZE / DB_POOL_MAX_OVERFLOW
to cover METRICS_MAX_WORKERS per concurrent request.

SQLite is only used by tests: a StaticPool shares the one in-memory
connection with every thread.
"""

import logging
from collections.abc import Generator

from sqlalchemy import Engine, create_engine, inspect, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .config import settings

logger = logging.getLogger(__name__)

MASTER_SHEET_TABLE = "master_sheet"


def _create_engine() -> Engine:
    if settings.is_sqlite:
        logger.info("Using SQLite master sheet (test mode)")
        pool_options = {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        logger.info(
            f"Using PostgreSQL master sheet: pool size={settings.db_pool_size}, "
            f"max_overflow={settings.db_pool_max_overflow}, "
            f"recycle={settings.db_pool_recycle}s"
        )
        pool_options = {
            "poolclass": QueuePool,
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_pool_max_overflow,
            "pool_recycle": settings.db_pool_recycle,
            "pool_pre_ping": settings.db_pool_pre_ping,
            "pool_timeout": 30,
        }

    return create_engine(settings.database_url, echo=settings.debug, **pool_options)


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session dependency (used by the readiness probe)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_health() -> dict:
    """
    Check that the master sheet is reachable.

    Returns:
        dict with "status" ("healthy" / "unhealthy"), the backend name,
        whether the master sheet table exists and, for PostgreSQL, pool
        usage.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            has_master_sheet = inspect(conn).has_table(MASTER_SHEET_TABLE)
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}

    health = {
        "status": "healthy" if has_master_sheet else "unhealthy",
        "database": "sqlite" if settings.is_sqlite else "postgresql",
        "master_sheet": has_master_sheet,
    }
    if isinstance(engine.pool, QueuePool):
        health["pool"] = {
            "size": engine.pool.size(),
            "checked_out": engine.pool.checkedout(),
            "overflow": engine.pool.overflow(),
        }
    return health
