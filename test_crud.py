"""Tests for store operations against SQLite."""

import asyncio

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import database
from crud import ReminderStore, get_devices, get_reminders, get_settings, update_next_date
from database import AppSettings, Device, Reminder


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'reminders.db'}",
        connect_args={"check_same_thread": False}
    )
    database.init_db(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    db.add_all([
        Reminder(id="r1", name="Stretch", next_date="2025-03-10T08:00", cycle="daily", target_device_id="all"),
        Reminder(id="r2", name="Rent", notes="transfer", next_date=None, cycle="once", is_critical=True),
        Device(id="1", name="iPhone", bark_key="tokenA"),
    ])
    db.commit()
    db.close()

    yield factory
    engine.dispose()


def test_reads_return_snapshot_records(session_factory):
    db = session_factory()
    try:
        reminders = get_reminders(db)
        devices = get_devices(db)
    finally:
        db.close()

    assert [r.id for r in reminders] == ["r1", "r2"]
    assert reminders[1].notes == "transfer"
    assert reminders[1].is_critical is True
    assert reminders[0].is_critical is None
    assert [(d.id, d.name, d.bark_key) for d in devices] == [("1", "iPhone", "tokenA")]


def test_settings_absent_then_present(session_factory):
    db = session_factory()
    try:
        assert get_settings(db) is None
        db.add(AppSettings(bark_critical=True))
        db.commit()
        assert get_settings(db).bark_critical is True
    finally:
        db.close()


def test_update_next_date(session_factory):
    db = session_factory()
    try:
        assert update_next_date(db, "r1", "2025-03-11T08:00") is True
        assert update_next_date(db, "r1", None) is True
        assert update_next_date(db, "missing", "2025-03-11T08:00") is False
        db.expire_all()
        assert db.get(Reminder, "r1").next_date is None
    finally:
        db.close()


def test_async_store_round_trip(session_factory):
    store = ReminderStore(session_factory)

    async def scenario():
        reminders, devices, app_settings = await asyncio.gather(
            store.fetch_reminders(), store.fetch_devices(), store.fetch_settings()
        )
        updated = await store.update_next_date("r1", "2025-03-11T08:00")
        return reminders, devices, app_settings, updated, await store.fetch_reminders()

    reminders, devices, app_settings, updated, after = asyncio.run(scenario())

    assert len(reminders) == 2
    assert len(devices) == 1
    assert app_settings is None
    assert updated is True
    assert after[0].next_date == "2025-03-11T08:00"


def test_engine_requires_database_url(monkeypatch):
    from config import ConfigurationError, settings

    monkeypatch.setattr(settings, "DATABASE_URL", None)
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_session_factory", None)

    with pytest.raises(ConfigurationError):
        database.get_session_factory()
