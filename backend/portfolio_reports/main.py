# backend/portfolio_reports/main.py
"""
FastAPI application entry point.

Run with:
    uvicorn portfolio_reports.main:app --app-dir backend

Wires logging, middleware (CORS, rate limiting, correlation IDs), the
service-exception to HTTP mapping, the report routers and the health
probes. All report logic lives in services/; nothing here computes.
"""

import logging

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session

from portfolio_reports.config import settings
from portfolio_reports.database import check_database_health, get_db
from portfolio_reports.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
    RATE_LIMIT_HEALTH,
)
from portfolio_reports.routers import metrics_router
from portfolio_reports.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_reports.services.exceptions import (
    ServiceError,
    ValidationError,
    ConfigurationError,
    NotFoundError,
)
from portfolio_reports.utils import setup_logging

logger = logging.getLogger(__name__)

setup_logging()

app = FastAPI(
    title=settings.app_name,
    description=(
        "Per-account and consolidated portfolio reports: trailing returns, "
        "drawdowns, equity curves and monthly / quarterly P&L tables."
    ),
    version="0.1.0",
)


# =============================================================================
# MIDDLEWARE (last added = outermost)
# =============================================================================

# Reports are read-only
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Outermost, so every log line of the request carries the correlation ID
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
# Starlette picks the handler of the most specific class, so
# ConfigurationError is matched before ValidationError and ServiceError
# only sees what nothing else claimed.

# Status codes that FastAPI itself raises (unknown route, wrong method)
_HTTP_ERROR_TYPES = {
    400: "BadRequestError",
    404: "NotFoundError",
    405: "MethodNotAllowedError",
    429: "RateLimitError",
    503: "ServiceUnavailableError",
}


def _error_response(
        status_code: int,
        error: str,
        message: str,
        details: dict | None = None,
        headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(error=error, message=message, details=details).model_dump(),
        headers=headers,
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Unknown account or investor (404)."""
    logger.warning(f"{exc.resource_type or 'Resource'} not found: {exc.resource_id}")
    return _error_response(
        404,
        type(exc).__name__,
        str(exc),
        {"resource_type": exc.resource_type, "resource_id": exc.resource_id},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Unusable tag spec or account profile (400)."""
    logger.warning(f"Configuration error: {exc}")
    details = {"field": exc.field, "value": exc.value}
    return _error_response(
        400,
        "ConfigurationError",
        str(exc),
        {k: v for k, v in details.items() if v is not None} or None,
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Invalid request values such as a reversed date range (400)."""
    logger.warning(f"Validation error: {exc}")
    return _error_response(
        400,
        "ValidationError",
        str(exc),
        {"field": exc.field} if exc.field else None,
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Anything else the services raise, e.g. an unreadable master sheet (500)."""
    logger.error(f"Service error: {exc}", exc_info=True)
    return _error_response(500, type(exc).__name__, str(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        _HTTP_ERROR_TYPES.get(exc.status_code, "HTTPError"),
        str(exc.detail) if exc.detail else "An error occurred",
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query or path parameters (422)."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Request validation failed: {errors}")
    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(details=errors).model_dump(),
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(metrics_router)  # /accounts/*, /investors/*


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    return {
        "message": f"{settings.app_name} API",
        "docs": "/docs",
        "reports": ["/accounts/{qcode}/metrics", "/investors/{icode}/metrics"],
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """
    Master sheet connectivity.

    - 200: database reachable and the master sheet table exists
    - 503: otherwise; reports cannot be served
    """
    database = check_database_health()
    body = {"status": database["status"], "checks": {"database": database}}

    if database["status"] != "healthy":
        return JSONResponse(status_code=503, content=body)
    return body


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """Liveness probe: the process is up. Does not touch the database."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """Readiness probe: 503 while the database cannot answer a query."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": "Database unavailable"},
        )
    return {"status": "ready"}
