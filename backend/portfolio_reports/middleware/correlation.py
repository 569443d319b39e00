# backend/portfolio_reports/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

The ID is taken from X-Correlation-ID, then X-Request-ID, else generated.
It is stored in the request context (copied into metrics worker threads
by the service), echoed in the X-Correlation-ID response header and
written on one access log line per request.

Usage:
    app.add_middleware(CorrelationIdMiddleware)
"""

import logging
import time
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_reports.utils.context import (
    clear_correlation_id,
    new_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def _incoming_id(request: Request) -> str:
    return (
        request.headers.get(CORRELATION_ID_HEADER)
        or request.headers.get(REQUEST_ID_HEADER)
        or new_correlation_id()
    )


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to each request and logs its outcome."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = _incoming_id(request)
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {elapsed_ms:.0f}ms"
            )
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()
