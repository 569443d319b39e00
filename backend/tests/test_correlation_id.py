# tests/test_correlation_id.py
"""
Tests for correlation ID middleware, context management and log records.
"""

import json
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from portfolio_reports.database import get_db
from portfolio_reports.main import app
from portfolio_reports.middleware.rate_limit import limiter
from portfolio_reports.utils.context import (
    clear_correlation_id,
    get_correlation_id,
    run_in_worker_context,
    set_correlation_id,
)
from portfolio_reports.utils.logging import NO_CORRELATION_ID, CorrelationIdFilter, JsonFormatter


class TestContextVariable:
    """get / set / clear of the request correlation ID."""

    def test_unset_is_none(self):
        clear_correlation_id()

        assert get_correlation_id() is None

    def test_roundtrip(self):
        set_correlation_id("report-42")
        try:
            assert get_correlation_id() == "report-42"
        finally:
            clear_correlation_id()

    def test_clear(self):
        set_correlation_id("report-43")
        clear_correlation_id()

        assert get_correlation_id() is None


class TestWorkerContext:
    """Tests for run_in_worker_context."""

    def test_plain_worker_does_not_see_id(self):
        """Threads start with an empty context."""
        set_correlation_id("outer")
        try:
            with ThreadPoolExecutor(max_workers=1) as pool:
                seen = pool.submit(get_correlation_id).result()
        finally:
            clear_correlation_id()

        assert seen is None

    def test_wrapped_worker_sees_id(self):
        set_correlation_id("outer")
        try:
            with ThreadPoolExecutor(max_workers=1) as pool:
                seen = pool.submit(run_in_worker_context(get_correlation_id)).result()
        finally:
            clear_correlation_id()

        assert seen == "outer"

    def test_snapshot_taken_at_wrap_time(self):
        set_correlation_id("first")
        wrapped = run_in_worker_context(get_correlation_id)
        set_correlation_id("second")
        try:
            assert wrapped() == "first"
        finally:
            clear_correlation_id()

    def test_arguments_passed_through(self):
        wrapped = run_in_worker_context(lambda a, b=0: a + b)

        assert wrapped(2, b=3) == 5


class TestLogRecords:
    """Tests for the correlation ID filter and JSON formatter."""

    def _record(self, message: str = "hello") -> logging.LogRecord:
        return logging.LogRecord("portfolio_reports.test", logging.INFO, __file__, 1, message, None, None)

    def test_filter_adds_correlation_id(self):
        record = self._record()
        set_correlation_id("log-1")
        try:
            CorrelationIdFilter().filter(record)
        finally:
            clear_correlation_id()

        assert record.correlation_id == "log-1"

    def test_filter_placeholder_without_id(self):
        clear_correlation_id()
        record = self._record()

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == NO_CORRELATION_ID

    def test_json_formatter(self):
        record = self._record("Consolidated 2 accounts")
        record.correlation_id = "json-1"
        record.qcode = "QAC00001"

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "json-1"
        assert entry["message"] == "Consolidated 2 accounts"
        assert entry["extra"] == {"qcode": "QAC00001"}


class TestCorrelationIdMiddleware:
    """Header handling and the access log line."""

    @pytest.fixture
    def client(self, db: Session):
        def session_override():
            yield db

        limiter.reset()
        app.dependency_overrides[get_db] = session_override
        with TestClient(app) as c:
            yield c
        app.dependency_overrides.clear()

    def test_generated_id_is_uuid(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        uuid.UUID(response.headers["X-Correlation-ID"])

    @pytest.mark.parametrize("header", ["X-Correlation-ID", "X-Request-ID"])
    def test_incoming_id_echoed(self, client, header):
        response = client.get("/health/ready", headers={header: "upstream-7"})

        assert response.headers["X-Correlation-ID"] == "upstream-7"

    def test_correlation_header_wins(self, client):
        response = client.get(
            "/health/ready",
            headers={"X-Correlation-ID": "corr-1", "X-Request-ID": "req-1"},
        )

        assert response.headers["X-Correlation-ID"] == "corr-1"

    def test_root_carries_id(self, client):
        assert "X-Correlation-ID" in client.get("/").headers

    def test_each_request_gets_own_id(self, client):
        first = client.get("/health/live").headers["X-Correlation-ID"]
        second = client.get("/health/live").headers["X-Correlation-ID"]

        assert first != second

    def test_access_line_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="portfolio_reports.middleware.correlation")

        client.get("/health/live")

        messages = [
            r.getMessage() for r in caplog.records
            if r.name == "portfolio_reports.middleware.correlation"
        ]
        assert any(m.startswith("GET /health/live -> 200 in ") for m in messages)
