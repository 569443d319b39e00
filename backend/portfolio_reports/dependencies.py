# backend/portfolio_reports/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. The metrics service holds no per-request state, so one
instance serves every request.

Services are lazily initialized on first use to avoid import-time side effects
(the account profile file is read on the first metrics request).

Usage in routers:
    from portfolio_reports.dependencies import get_metrics_service

    @router.get("/accounts/{qcode}/metrics")
    def get_account_metrics(
        service: PortfolioMetricsService = Depends(get_metrics_service),
    ):
        ...

Tests replace the service with app.dependency_overrides[get_metrics_service].
"""

import logging
from functools import lru_cache

from portfolio_reports.config import settings
from portfolio_reports.database import SessionLocal
from portfolio_reports.services.accounts import AccountRegistry
from portfolio_reports.services.data_source import MasterSheetDataSource
from portfolio_reports.services.metrics import PortfolioMetricsService

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Using @lru_cache ensures the function returns the same instance on every call
#
# Order matters: define dependencies before dependents
# 1. get_data_source (no deps)
# 2. get_account_registry (no deps)
# 3. get_metrics_service (depends on data source, registry)


@lru_cache(maxsize=1)
def get_data_source() -> MasterSheetDataSource:
    """
    Get the singleton master sheet reader.

    Opens one short-lived session per read, so it is safe to share across
    request threads and metrics worker threads.
    """
    logger.debug("Initializing singleton MasterSheetDataSource")
    return MasterSheetDataSource(SessionLocal)


@lru_cache(maxsize=1)
def get_account_registry() -> AccountRegistry:
    """
    Get the singleton account profile registry.

    Loaded from ACCOUNTS_CONFIG_PATH; empty when unset, in which case every
    account uses the default tags for its type and broker.
    """
    logger.debug("Initializing singleton AccountRegistry")
    return AccountRegistry.from_file(settings.accounts_config_path)


@lru_cache(maxsize=1)
def get_metrics_service() -> PortfolioMetricsService:
    """Get the singleton PortfolioMetricsService instance."""
    logger.debug("Initializing singleton PortfolioMetricsService")
    return PortfolioMetricsService(
        data_source=get_data_source(),
        registry=get_account_registry(),
        max_workers=settings.metrics_max_workers,
    )


# =============================================================================
# CACHE MANAGEMENT
# =============================================================================

def clear_service_caches() -> None:
    """
    Clear all service singletons.

    Useful for testing, or to pick up an edited account profile file.
    """
    get_data_source.cache_clear()
    get_account_registry.cache_clear()
    get_metrics_service.cache_clear()
    logger.info("Cleared all service singleton caches")
