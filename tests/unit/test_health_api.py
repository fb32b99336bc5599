"""
Tests for shared/api/health.py

Covers 2 endpoints: read_root, database_health.
"""

import pytest
from unittest.mock import MagicMock, patch
from fastapi import FastAPI
from fastapi.testclient import TestClient

from shared.api.health import router
from database import get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_client():
    """Build a test app with only the health router and a mocked DB dependency."""
    app = FastAPI()
    app.include_router(router)

    db = MagicMock()
    db.query.return_value.scalar.return_value = 2

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


# ===========================================================================
# read_root
# ===========================================================================

class TestReadRoot:

    def test_health_check(self, health_client):
        resp = health_client.get("/")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "service": "Signal Backend", "version": "1.0.0"}


# ===========================================================================
# database_health
# ===========================================================================

class TestDatabaseHealth:

    @patch("shared.api.health.get_db_manager")
    def test_db_healthy(self, mock_get_manager, health_client):
        mock_manager = MagicMock()
        mock_manager.health_check.return_value = True
        mock_get_manager.return_value = mock_manager

        resp = health_client.get("/health/db")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "database": "connected", "feedback_records": 2}

    @patch("shared.api.health.get_db_manager")
    def test_db_unhealthy(self, mock_get_manager, health_client):
        mock_manager = MagicMock()
        mock_manager.health_check.return_value = False
        mock_get_manager.return_value = mock_manager

        data = health_client.get("/health/db").json()
        assert data["status"] == "error"
        assert data["database"] == "connection_failed"

    @patch("shared.api.health.get_db_manager")
    def test_db_exception(self, mock_get_manager, health_client):
        mock_get_manager.side_effect = RuntimeError("cannot connect")

        data = health_client.get("/health/db").json()
        assert data["status"] == "error"
        assert "cannot connect" in data["database"]


class TestFullApp:

    def test_root_served_by_main_app(self, client):
        assert client.get("/").json()["service"] == "Signal Backend"

    @patch("shared.api.health.get_db_manager")
    def test_db_health_counts_stored_feedback(self, mock_get_manager, client, relay_headers):
        mock_get_manager.return_value.health_check.return_value = True
        body = {
            "trace_id": "4f6c2b1e-8d3a-4c5b-9e7f-0a1b2c3d4e5f",
            "content_id": "content-1",
            "feedback": "useful",
            "timestamp": "2026-10-01T12:00:00Z",
        }
        assert client.post("/api/feedback", json=body, headers=relay_headers).status_code == 200
        assert client.get("/health/db").json()["feedback_records"] == 1
