"""Tests for the in-process periodic runner."""

import asyncio

import background_worker
from config import settings
from conftest import FakeStore


def test_run_once_returns_report(make_notifier, monkeypatch):
    monkeypatch.setattr(settings, "REMINDER_LOOKAHEAD_MIN", 60 * 24 * 365 * 50)
    store = FakeStore(
        reminders=[{"id": "r1", "name": "Stretch", "next_date": "2020-01-01T07:30", "cycle": "weekly"}],
        devices=[{"id": "1", "name": "iPhone", "bark_key": "tokenA"}],
    )
    report = asyncio.run(background_worker.run_once(store, make_notifier()))

    assert report.sent == 1
    assert store.updates == [("r1", "2020-01-08T07:30")]


def test_run_once_survives_fetch_failure(make_notifier):
    store = FakeStore(fail_fetch="reminders")

    assert asyncio.run(background_worker.run_once(store, make_notifier())) is None


def test_disabled_worker_returns_immediately(monkeypatch):
    monkeypatch.setattr(settings, "WORKER_ENABLED", False)

    asyncio.run(background_worker.worker_loop())
