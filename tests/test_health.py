"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against a reachable store
  - components.database reports 'error' when the store cannot be reached
  - No authentication required
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    client, _store, _settings = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_reports_database_error(api_client, monkeypatch):
    """A failing ping is reported in components, not as a 500."""
    client, store, _settings = api_client

    def broken_ping():
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    monkeypatch.setattr(store, "ping", broken_ping)
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["components"]["database"] == "error"


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any headers."""
    client, _store, _settings = api_client
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200
