"""Database module for Reminder Dispatcher.

SQLAlchemy models for the three collections the dispatcher reads
(reminders, devices, settings) and lazy engine/session management.
The engine is only built on first use so that a missing DATABASE_URL
surfaces as a configuration error instead of an import failure.
"""

from typing import Optional

from sqlalchemy import create_engine, Column, Integer, String, Boolean
from sqlalchemy.engine import Engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from config import settings

# SQLAlchemy Base
Base = declarative_base()


class Reminder(Base):
    """Reminder row.

    next_date is kept as the minute-precision string the frontend writes
    ("YYYY-MM-DDTHH:MM"); it is NULL once a one-off reminder has fired.
    """

    __tablename__ = "reminders"

    id = Column(String, primary_key=True, doc="Reminder identifier")
    name = Column(String, nullable=False, doc="Display name, used as notification title")
    notes = Column(String, nullable=True, doc="Optional note, used as notification body")
    next_date = Column(String, nullable=True, index=True, doc="Next due time, minute precision")
    cycle = Column(String, nullable=False, default="once", doc="once, daily, weekly or monthly")
    target_device_id = Column(String, nullable=True, doc="Device id or 'all'")
    is_critical = Column(Boolean, nullable=True, doc="Per-reminder critical flag")

    def __repr__(self):
        return f"<Reminder(id={self.id}, name={self.name}, next_date={self.next_date}, cycle={self.cycle})>"


class Device(Base):
    """Push target. bark_key is either a short token or a full server URL."""

    __tablename__ = "devices"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    bark_key = Column(String, nullable=False)

    def __repr__(self):
        return f"<Device(id={self.id}, name={self.name})>"


class AppSettings(Base):
    """Global settings singleton (at most one row is read)."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bark_critical = Column(Boolean, nullable=False, default=False)


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Build (once) and return the engine for settings.DATABASE_URL.

    Raises:
        ConfigurationError: DATABASE_URL is not set
    """
    global _engine
    if _engine is None:
        url = settings.require_database_url()
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
            echo=False
        )
    return _engine


def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def init_db(engine: Optional[Engine] = None):
    """Create all tables (used for local SQLite stores and tests)."""
    Base.metadata.create_all(bind=engine or get_engine())
