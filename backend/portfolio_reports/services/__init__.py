# backend/portfolio_reports/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive their data source via the constructor (not via Depends)
- Are easily testable via dependency injection

Usage:
    from portfolio_reports.services import PortfolioMetricsService
    from portfolio_reports.services import MasterSheetDataSource
    from portfolio_reports.services import (
        AccountNotFoundError,
        ConfigurationError,
    )

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Business constants and limits
    ├── protocols.py                 # Service interfaces (Protocol classes)
    ├── accounts.py                  # Account profiles, tag resolution
    ├── data_source.py               # Master sheet reader (SQLAlchemy)
    └── metrics/                     # Metrics engine
        ├── service.py               # Main metrics orchestrator
        ├── types.py                 # Metrics data types
        ├── resolver.py              # Nearest-date lookup
        ├── returns.py               # Absolute / CAGR
        ├── drawdown.py              # Drawdown tracking
        ├── trailing.py              # Trailing windows
        ├── buckets.py               # Monthly / quarterly tables
        └── assembler.py             # Result assembly, consolidation
"""

# Exceptions
from portfolio_reports.services.exceptions import (
    ServiceError,
    ValidationError,
    ConfigurationError,
    NotFoundError,
    AccountNotFoundError,
    InvestorNotFoundError,
    MetricsError,
)
# Account configuration
from portfolio_reports.services.accounts import (
    AccountInfo,
    AccountProfile,
    AccountRegistry,
    TagSet,
    parse_tag_spec,
)
# Data source
from portfolio_reports.services.data_source import MasterSheetDataSource
from portfolio_reports.services.protocols import DataSourceProtocol, TagSummary
# Metrics Service
from portfolio_reports.services.metrics import PortfolioMetricsService

__all__ = [
    # ==========================================================================
    # Services
    # ==========================================================================
    "PortfolioMetricsService",
    "MasterSheetDataSource",
    "DataSourceProtocol",
    "TagSummary",

    # Account configuration
    "AccountInfo",
    "AccountProfile",
    "AccountRegistry",
    "TagSet",
    "parse_tag_spec",

    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "ServiceError",
    "ValidationError",
    "ConfigurationError",
    "NotFoundError",
    "AccountNotFoundError",
    "InvestorNotFoundError",
    "MetricsError",
]
