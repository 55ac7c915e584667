"""
Tests for the application entry point: lifespan wiring and routers.
"""

from fastapi.testclient import TestClient

import main


def test_lifespan_builds_context_and_tears_down(monkeypatch):
    monkeypatch.setenv("HEALTH_MONITOR_ENABLED", "false")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SWELL_STORE_ID", raising=False)

    with TestClient(main.app) as client:
        context = main.app.state.context
        assert client.get("/api/health/features").status_code == 200
        assert client.get("/api/fallback/status").json()["ecommerce"]["active"] is True
        assert not context.health_monitor.is_running

    assert context.health_monitor.get_alerts() == []


def test_monitoring_starts_when_enabled(monkeypatch):
    monkeypatch.setenv("HEALTH_MONITOR_ENABLED", "true")

    with TestClient(main.app) as client:
        context = main.app.state.context
        assert context.health_monitor.is_running
        assert client.get("/api/health/system").status_code == 200

    assert not context.health_monitor.is_running
