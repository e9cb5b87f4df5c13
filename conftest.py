"""Shared fixtures: an in-memory store and a recording push transport."""

import httpx
import pytest

from config import Settings
from notifier import Notifier
from schemas import DeviceRecord, ReminderRecord, SettingsRecord


class FakeStore:
    """In-memory stand-in exposing the ReminderStore interface."""

    def __init__(self, reminders=(), devices=(), settings=None, fail_fetch=None, fail_update=()):
        self.reminders = [ReminderRecord.model_validate(r) for r in reminders]
        self.devices = [DeviceRecord.model_validate(d) for d in devices]
        self.settings = SettingsRecord.model_validate(settings) if settings is not None else None
        self.fail_fetch = fail_fetch
        self.fail_update = set(fail_update)
        self.updates = []

    async def fetch_reminders(self):
        if self.fail_fetch == "reminders":
            raise RuntimeError("reminders query failed")
        return list(self.reminders)

    async def fetch_devices(self):
        if self.fail_fetch == "devices":
            raise RuntimeError("devices query failed")
        return list(self.devices)

    async def fetch_settings(self):
        if self.fail_fetch == "settings":
            raise RuntimeError("settings query failed")
        return self.settings

    async def update_next_date(self, reminder_id, next_date):
        if reminder_id in self.fail_update:
            raise RuntimeError(f"update of {reminder_id} failed")
        self.updates.append((reminder_id, next_date))
        return True


@pytest.fixture
def app_config():
    return Settings(_env_file=None, DATABASE_URL="sqlite://")


@pytest.fixture
def push_requests():
    """Every request the fake push service received."""
    return []


@pytest.fixture
def make_notifier(push_requests, app_config):
    """Build a Notifier whose transport records requests.

    respond(request) may return a status code or raise an httpx error.
    """
    def factory(respond=None, config=None):
        def handler(request):
            push_requests.append(request)
            status = respond(request) if respond else 200
            return httpx.Response(status, json={"code": status})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Notifier(client, config or app_config)

    return factory
