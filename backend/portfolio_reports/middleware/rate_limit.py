# backend/portfolio_reports/middleware/rate_limit.py
"""
Per-client request limits (slowapi).

A report request replays an account's full NAV history, several accounts
in parallel for an investor, so the report routes get their own limit
(RATE_LIMIT_METRICS, configurable) below the default. Health probes have
a separate, higher budget.

Clients are keyed by IP. Forwarding headers count only behind a trusted
proxy. Counters live in process memory.
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from portfolio_reports.config import settings
from portfolio_reports.schemas.errors import ErrorDetail
from portfolio_reports.services.constants import RATE_LIMIT_DEFAULT, RATE_LIMIT_HEALTH

logger = logging.getLogger(__name__)

RATE_LIMIT_METRICS: str = settings.rate_limit_metrics

RETRY_AFTER_SECONDS = 60


def _behind_trusted_proxy(remote: str) -> bool:
    return settings.trust_proxy_headers or remote in settings.trusted_proxy_ips


def client_key(request: Request) -> str:
    """Rate limit key: the caller's IP address."""
    remote = get_remote_address(request)
    if not _behind_trusted_proxy(remote):
        return remote

    # Leftmost X-Forwarded-For hop is the originating client
    forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    return forwarded or request.headers.get("X-Real-IP") or remote


limiter = Limiter(key_func=client_key, default_limits=[RATE_LIMIT_DEFAULT])


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """429 in the ErrorDetail shape, with Retry-After."""
    limit = str(exc.detail) if exc.detail else "rate limit"
    logger.warning(f"{client_key(request)} exceeded {limit} on {request.url.path}")

    body = ErrorDetail(
        error="RateLimitError",
        message=f"Too many report requests ({limit})",
        details={"retry_after": RETRY_AFTER_SECONDS},
    )
    return JSONResponse(
        status_code=429,
        content=body.model_dump(),
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "client_key",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_HEALTH",
    "RATE_LIMIT_METRICS",
]
