# backend/portfolio_reports/utils/context.py
"""
Request context management for Portfolio Reports.

Holds the correlation ID of the request being served so that every log
line it produces can be traced back to it.

Uses Python's contextvars for async-safe storage that automatically
propagates through async/await calls. Worker threads do NOT inherit the
context on their own; code that fans out to a thread pool must submit
through run_in_worker_context() (see the metrics service).

Usage:
    from portfolio_reports.utils.context import get_correlation_id, set_correlation_id

    # In middleware
    set_correlation_id("abc-123")

    # In any service/handler
    correlation_id = get_correlation_id()  # Returns "abc-123"
"""

import contextvars
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

# Correlation ID for request tracing
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def new_correlation_id() -> str:
    """Generate a fresh correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """
    Get the current request's correlation ID.

    Returns:
        The correlation ID for the current request, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current request.

    This should be called by middleware at the start of each request.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """
    Clear the correlation ID.

    This should be called by middleware at the end of each request.
    """
    _correlation_id_var.set(None)


def run_in_worker_context(
        fn: Callable[P, R],
) -> Callable[P, R]:
    """
    Wrap fn so it runs inside a copy of the caller's context.

    Each call to this function takes its own snapshot, so the wrapper can
    be handed to exactly one worker thread.

    Example:
        pool.submit(run_in_worker_context(compute), job)
    """
    ctx = contextvars.copy_context()

    def runner(*args: P.args, **kwargs: P.kwargs) -> R:
        return ctx.run(fn, *args, **kwargs)

    return runner
