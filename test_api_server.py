"""Tests for the HTTP trigger endpoints."""

import pytest
from fastapi.testclient import TestClient

import api_server
import database
from config import settings
from conftest import FakeStore

DUE_NOW = "2020-01-01T00:00"


@pytest.fixture
def client():
    with TestClient(api_server.app) as test_client:
        yield test_client
    api_server.app.dependency_overrides.clear()


def use(store, notifier):
    api_server.app.dependency_overrides[api_server.get_store] = lambda: store
    api_server.app.dependency_overrides[api_server.get_notifier] = lambda: notifier


def test_cron_runs_a_cycle(client, make_notifier, push_requests, monkeypatch):
    monkeypatch.setattr(settings, "REMINDER_LOOKAHEAD_MIN", 60 * 24 * 365 * 50)
    store = FakeStore(
        reminders=[{"id": 5, "name": "Stretch", "next_date": DUE_NOW, "cycle": "daily"}],
        devices=[{"id": 1, "name": "iPhone", "bark_key": "tokenA"}],
    )
    use(store, make_notifier())

    response = client.get("/api/cron")

    assert response.status_code == 200
    assert response.json() == {
        "sent": 1,
        "details": [{"id": "5", "sentTo": ["iPhone"], "next_date": "2020-01-02T00:00"}],
    }
    assert len(push_requests) == 1


def test_cron_fetch_failure(client, make_notifier):
    use(FakeStore(fail_fetch="devices"), make_notifier())

    response = client.get("/api/cron")

    assert response.status_code == 500
    assert response.json() == {"error": "Cron failed", "detail": "devices query failed"}


@pytest.mark.parametrize("method", ["post", "put", "delete", "patch"])
def test_cron_rejects_other_methods(client, method):
    response = getattr(client, method)("/api/cron")

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}


def test_cron_without_database_url(client, make_notifier, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", None)
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_session_factory", None)
    api_server.app.dependency_overrides[api_server.get_notifier] = lambda: make_notifier()

    response = client.get("/api/cron")

    assert response.status_code == 500
    assert "DATABASE_URL" in response.json()["error"]


def test_public_config(client, monkeypatch):
    monkeypatch.setattr(settings, "PUBLIC_STORE_URL", "https://store.example.com")
    monkeypatch.setattr(settings, "PUBLIC_STORE_KEY", "anon-key")

    response = client.get("/api/config")

    assert response.status_code == 200
    assert response.json() == {"url": "https://store.example.com", "key": "anon-key"}


def test_public_config_missing(client, monkeypatch):
    monkeypatch.setattr(settings, "PUBLIC_STORE_URL", None)

    response = client.get("/api/config")

    assert response.status_code == 500
    assert "error" in response.json()
    assert client.post("/api/config").status_code == 405


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
