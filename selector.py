"""Due-set selection for Reminder Dispatcher."""

from datetime import datetime, timedelta
from typing import List, Optional

from recurrence import parse_timestamp
from schemas import DeviceRecord, ReminderRecord, SettingsRecord

ALL_DEVICES = "all"


def is_due(reminder: ReminderRecord, now: datetime, window: timedelta) -> bool:
    """True when |next_date - now| <= window (closed interval).

    A missing or unparseable next_date is never due.
    """
    target = parse_timestamp(reminder.next_date)
    if target is None:
        return False
    return abs(target - now) <= window


def select_due(reminders: List[ReminderRecord], now: datetime, window: timedelta) -> List[ReminderRecord]:
    """Filter the snapshot to due reminders, keeping snapshot order."""
    return [r for r in reminders if is_due(r, now, window)]


def resolve_targets(reminder: ReminderRecord, devices: List[DeviceRecord]) -> List[DeviceRecord]:
    """Devices a reminder should reach.

    A specific target_device_id selects at most that device; an empty
    selector or "all" selects every device.
    """
    selector = reminder.target_device_id
    if selector and selector != ALL_DEVICES:
        return [d for d in devices if str(d.id) == str(selector)]
    return list(devices)


def effective_critical(reminder: ReminderRecord, settings: Optional[SettingsRecord]) -> bool:
    """Reminder flag OR the global default (non-critical when settings are absent)."""
    default = settings.bark_critical if settings is not None else False
    return bool(reminder.is_critical) or default
