# tests/test_health_endpoints.py
import pytest
from fastapi.testclient import TestClient

from foreman import __version__
from foreman.config import settings
from foreman.main import app, startup_checks

client = TestClient(app)


def test_health_endpoint():
    """Health reports version, flow profile and the active store backend."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["version"] == __version__
    assert data["flow_profile"] == "basic"
    assert data["closing_mode"] == "model"
    assert data["store"] == "memory"
    assert "timestamp" in data


def test_ping_endpoint():
    response = client.get("/ping")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["pong"] is True
    assert "time" in data


def test_startup_checks_tolerate_missing_env():
    startup_checks()


def test_startup_checks_strict_mode(monkeypatch):
    monkeypatch.setenv("STRICT_MODE", "true")
    settings.cache_clear()
    with pytest.raises(RuntimeError):
        startup_checks()
