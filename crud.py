"""Store operations for Reminder Dispatcher.

Three reads (reminders, devices, settings) and one write (a reminder's
next_date). ReminderStore wraps them for the async dispatch cycle:
every call runs on a worker thread with its own session, so the three
reads of a cycle can run concurrently.
"""

import asyncio
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from database import AppSettings, Device, Reminder
from logger_config import setup_logger
from schemas import DeviceRecord, ReminderRecord, SettingsRecord

logger = setup_logger(__name__, 'crud.log')


def get_reminders(db: Session) -> List[ReminderRecord]:
    """Load every reminder, in primary key order.

    Args:
        db: Database session

    Returns:
        List[ReminderRecord]: Detached snapshot records
    """
    rows = db.query(Reminder).order_by(Reminder.id).all()
    return [ReminderRecord.model_validate(row) for row in rows]


def get_devices(db: Session) -> List[DeviceRecord]:
    """Load every device."""
    rows = db.query(Device).order_by(Device.id).all()
    return [DeviceRecord.model_validate(row) for row in rows]


def get_settings(db: Session) -> Optional[SettingsRecord]:
    """Load the settings singleton.

    Returns:
        Optional[SettingsRecord]: First row, or None when the table is empty
    """
    row = db.query(AppSettings).order_by(AppSettings.id).first()
    if row is None:
        return None
    return SettingsRecord.model_validate(row)


def update_next_date(db: Session, reminder_id: str, next_date: Optional[str]) -> bool:
    """Set a reminder's next_date (None stops it from recurring).

    Args:
        db: Database session
        reminder_id: Reminder identifier
        next_date: New minute string or None

    Returns:
        bool: True if a row was updated, False if the reminder no longer exists

    Raises:
        SQLAlchemyError: On database errors
    """
    updated = db.query(Reminder).filter(Reminder.id == reminder_id).update(
        {Reminder.next_date: next_date}, synchronize_session=False
    )
    db.commit()
    return updated > 0


class ReminderStore:
    """Async facade over the CRUD functions.

    Args:
        session_factory: Callable returning a new Session (a sessionmaker)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _run(self, operation, *args):
        db = self.session_factory()
        try:
            return operation(db, *args)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def fetch_reminders(self) -> List[ReminderRecord]:
        return await asyncio.to_thread(self._run, get_reminders)

    async def fetch_devices(self) -> List[DeviceRecord]:
        return await asyncio.to_thread(self._run, get_devices)

    async def fetch_settings(self) -> Optional[SettingsRecord]:
        return await asyncio.to_thread(self._run, get_settings)

    async def update_next_date(self, reminder_id: str, next_date: Optional[str]) -> bool:
        return await asyncio.to_thread(self._run, update_next_date, reminder_id, next_date)
