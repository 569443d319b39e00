# backend/portfolio_reports/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The application layer is responsible for mapping these to appropriate HTTP responses.

Missing or stale data is never an exception: the metrics engine reports it
as None ("no data").

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── ConfigurationError
    ├── NotFoundError
    │   ├── AccountNotFoundError
    │   └── InvestorNotFoundError
    └── MetricsError
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    This is for programmatic validation errors (invalid parameters, malformed
    identifiers, etc.), NOT for request validation which is handled by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ConfigurationError(ValidationError):
    """
    Raised when account configuration cannot be interpreted.

    The typical cause is a tag spec ("depositTag|navTag[|cashflowTag]")
    with fewer than two non-empty segments. Unlike per-account data
    failures this is surfaced to the caller instead of being reduced to an
    empty result.

    Attributes:
        value: The offending configuration value
    """

    def __init__(self, message: str, value: str | None = None, field: str | None = None) -> None:
        self.value = value
        super().__init__(message, field=field)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Account", "Investor")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class AccountNotFoundError(NotFoundError):
    """
    Raised when an account code (qcode) is unknown.

    Attributes:
        qcode: Account code that was not found
    """

    def __init__(self, qcode: str) -> None:
        self.qcode = qcode
        super().__init__(
            f"Account '{qcode}' not found",
            resource_type="Account",
            resource_id=qcode,
        )


class InvestorNotFoundError(NotFoundError):
    """
    Raised when an investor code (icode) has no allocated accounts.

    Attributes:
        icode: Investor code that was not found
    """

    def __init__(self, icode: str) -> None:
        self.icode = icode
        super().__init__(
            f"No accounts found for investor '{icode}'",
            resource_type="Investor",
            resource_id=icode,
        )


# =============================================================================
# METRICS ERRORS
# =============================================================================


class MetricsError(ServiceError):
    """
    Raised when master sheet data cannot be read.

    PortfolioMetricsService catches it per account and reports that
    account with no data and a warning; direct data source callers see it.
    """
    pass


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "ConfigurationError",
    # Not Found
    "NotFoundError",
    "AccountNotFoundError",
    "InvestorNotFoundError",
    # Metrics
    "MetricsError",
]
