# tests/test_health.py
"""
Tests for the health endpoints against the application's own engine.
"""

import pytest
from fastapi.testclient import TestClient

from portfolio_reports.database import check_database_health, engine
from portfolio_reports.main import app
from portfolio_reports.middleware.rate_limit import limiter
from portfolio_reports.models import Base


@pytest.fixture
def client():
    limiter.reset()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def master_sheet_tables():
    """Create the tables on the application engine (in-memory SQLite)."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


class TestDatabaseHealth:
    """Tests for check_database_health."""

    def test_healthy_with_tables(self, master_sheet_tables):
        health = check_database_health()

        assert health["status"] == "healthy"
        assert health["database"] == "sqlite"
        assert health["master_sheet"] is True
        assert "pool" not in health

    def test_unhealthy_without_master_sheet(self):
        health = check_database_health()

        assert health["status"] == "unhealthy"
        assert health["master_sheet"] is False


class TestHealthEndpoints:

    def test_health_ok(self, client, master_sheet_tables):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"]["status"] == "healthy"

    def test_health_503_without_tables(self, client):
        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"
